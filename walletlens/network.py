"""Counterparty network analysis.

Builds the set of distinct addresses seen on the inputs and outputs of the
analyzed wallet's transactions. Each provider adapter extracts its own
counterparty list (see AddressSnapshot.counterparties); this module only
unions them, so it never depends on provider field names.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from walletlens.models import NetworkAnalysis, NetworkPattern, RiskConnection

HIGH_CONNECTIVITY_THRESHOLD = 50
SAMPLE_SIZE = 20

# Confidence attached to a denylist match
DENYLIST_CONFIDENCE = 100


def analyze_network(
    address_groups: Iterable[Iterable[str]],
    denylist: Mapping[str, str] | None = None,
) -> NetworkAnalysis:
    """
    Derive the counterparty cluster.

    Args:
        address_groups: One iterable of addresses per contributing provider,
            in provider order.
        denylist: Optional address → risk type mapping. Matches become
            risk connections. Nothing is wired in by default.

    Returns:
        NetworkAnalysis with cluster size, up to SAMPLE_SIZE sample addresses
        (first-seen order) and any detected patterns.
    """
    seen: dict[str, None] = {}
    for group in address_groups:
        for addr in group:
            if addr:
                seen.setdefault(addr, None)
    addresses = list(seen)

    patterns: list[NetworkPattern] = []
    if len(addresses) > HIGH_CONNECTIVITY_THRESHOLD:
        patterns.append(
            NetworkPattern(
                type="High Connectivity",
                description="Address connected to many other addresses",
                severity="medium",
            )
        )

    risk_connections: list[RiskConnection] = []
    if denylist:
        risk_connections = [
            RiskConnection(address=a, risk_type=denylist[a], confidence=DENYLIST_CONFIDENCE)
            for a in addresses
            if a in denylist
        ]

    return NetworkAnalysis(
        cluster_size=len(addresses),
        associated_addresses=addresses[:SAMPLE_SIZE],
        risk_connections=risk_connections,
        patterns=patterns,
    )

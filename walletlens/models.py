"""
Shared data models for walletlens.

These dataclasses are the canonical data shapes used across all modules:
providers produce them, the analyzer merges them, output renders them.
Amounts are BTC as Decimal; times are unix seconds (UTC).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


@dataclass
class TxIO:
    """One input or output of a transaction."""

    address: str | None
    value: Decimal

    def to_dict(self) -> dict:
        return {"address": self.address, "value": self.value}


@dataclass
class Transaction:
    """A single Bitcoin transaction, normalised across providers."""

    hash: str
    time: int                   # Unix timestamp (UTC seconds)
    value: Decimal              # BTC; meaning of "value" is provider-specific
    fee: Decimal = Decimal(0)
    confirmations: int = 0
    inputs: list[TxIO] = field(default_factory=list)
    outputs: list[TxIO] = field(default_factory=list)
    risk_flags: list[str] = field(default_factory=list)
    source: str = ""            # provider that produced this entry

    def to_dict(self) -> dict:
        return {
            "hash": self.hash,
            "time": self.time,
            "timestamp": datetime.fromtimestamp(self.time, tz=timezone.utc).isoformat(),
            "value": self.value,
            "fee": self.fee,
            "confirmations": self.confirmations,
            "inputs": [i.to_dict() for i in self.inputs],
            "outputs": [o.to_dict() for o in self.outputs],
            "risk_flags": list(self.risk_flags),
            "source": self.source,
        }


@dataclass
class AddressSnapshot:
    """
    One provider's normalised view of an address.

    Fields a provider does not report are left as None and ignored by the merge.
    """

    balance: Decimal | None = None
    transaction_count: int | None = None
    total_received: Decimal | None = None
    total_sent: Decimal | None = None
    first_seen: datetime | None = None
    last_seen: datetime | None = None
    transactions: list[Transaction] = field(default_factory=list)
    counterparties: list[str] = field(default_factory=list)


@dataclass
class ProviderResult:
    """Tagged outcome of one provider fetch. Created per call, never retained."""

    source: str
    success: bool
    data: Any = None                # raw payload, exactly as cached
    normalized: Any = None          # adapter-parsed view (AddressSnapshot, price, ...)
    error: str | None = None
    timestamp: float = 0.0          # wall clock, unix seconds
    from_cache: bool = False
    remaining: int | None = None    # rate budget left after this call

    @classmethod
    def failed(cls, source: str, error: str, timestamp: float) -> ProviderResult:
        return cls(source=source, success=False, error=error, timestamp=timestamp)


@dataclass
class NetworkPattern:
    """A detected connectivity pattern."""

    type: str
    description: str
    severity: str           # "low" | "medium" | "high"

    def to_dict(self) -> dict:
        return {"type": self.type, "description": self.description, "severity": self.severity}


@dataclass
class RiskConnection:
    """A counterparty that appears on a supplied denylist."""

    address: str
    risk_type: str
    confidence: int         # 0–100

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "risk_type": self.risk_type,
            "confidence": self.confidence,
        }


@dataclass
class NetworkAnalysis:
    """Counterparty cluster derived from merged provider data."""

    cluster_size: int = 0
    associated_addresses: list[str] = field(default_factory=list)
    risk_connections: list[RiskConnection] = field(default_factory=list)
    patterns: list[NetworkPattern] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "cluster_size": self.cluster_size,
            "associated_addresses": list(self.associated_addresses),
            "risk_connections": [r.to_dict() for r in self.risk_connections],
            "patterns": [p.to_dict() for p in self.patterns],
        }


@dataclass
class MergedWalletData:
    """Reconciled provider data before risk and network analysis."""

    address: str
    balance: Decimal
    transaction_count: int
    total_received: Decimal
    total_sent: Decimal
    first_seen: datetime | None
    last_seen: datetime | None
    transactions: list[Transaction]
    sources: list[str]


@dataclass
class AggregatedWalletData:
    """
    Canonical result of one wallet analysis.

    Built in one go by WalletAnalyzer.analyze_wallet; never partially populated.
    """

    address: str
    balance: Decimal
    transaction_count: int
    first_seen: datetime | None
    last_seen: datetime | None
    total_received: Decimal
    total_sent: Decimal
    risk_score: int             # 0–100
    risk_factors: list[str]
    confidence: int             # 0–100
    data_quality: str           # "high" | "medium" | "low"
    api_sources: list[str]
    transactions: list[Transaction]
    network_analysis: NetworkAnalysis
    provider_errors: dict[str, str] = field(default_factory=dict)
    btc_price_usd: Decimal | None = None
    balance_usd: Decimal | None = None
    analyzed_at: str = ""       # ISO8601 UTC

    def to_dict(self) -> dict:
        """Serialize for JSON output."""
        return {
            "address": self.address,
            "balance": self.balance,
            "balance_usd": self.balance_usd,
            "btc_price_usd": self.btc_price_usd,
            "transaction_count": self.transaction_count,
            "first_seen": _iso(self.first_seen),
            "last_seen": _iso(self.last_seen),
            "total_received": self.total_received,
            "total_sent": self.total_sent,
            "risk_score": self.risk_score,
            "risk_factors": list(self.risk_factors),
            "confidence": self.confidence,
            "data_quality": self.data_quality,
            "api_sources": list(self.api_sources),
            "provider_errors": dict(self.provider_errors),
            "transactions": [t.to_dict() for t in self.transactions],
            "network_analysis": self.network_analysis.to_dict(),
            "analyzed_at": self.analyzed_at,
        }


@dataclass
class ApiStatus:
    """Rate-limit health of one provider."""

    name: str
    remaining: int
    max_requests: int | None
    status: str             # "healthy" | "limited"
    reset_in_seconds: int = 0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "remaining": self.remaining,
            "max_requests": self.max_requests,
            "status": self.status,
            "reset_in_seconds": self.reset_in_seconds,
        }

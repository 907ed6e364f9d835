"""Heuristic wallet risk scoring (0–100).

Additive rules over the merged wallet record:
  1. Transaction frequency  (+20): lifetime transaction count > 1000
  2. Balance size           (+15): balance > 100 BTC
  3. Recency                (+10): last activity less than a day ago
  4. Round numbers          (+25): > 50% of sampled txs move a whole number of BTC
  5. Rapid succession       (+20): > 5 adjacent tx pairs less than 60 s apart

The total is clamped to 0–100. All functions are pure — no I/O, no side
effects. Transactions must already be sorted newest-first (the analyzer's
merge guarantees it); nothing here re-sorts.
"""

from __future__ import annotations

import dataclasses
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from walletlens.models import MergedWalletData, Transaction

# ── Thresholds ────────────────────────────────────────────────────────────────

HIGH_FREQUENCY_TX_COUNT = 1000
LARGE_BALANCE_BTC = Decimal(100)
RECENT_ACTIVITY = timedelta(days=1)
ROUND_NUMBER_SHARE = 0.5
RAPID_SUCCESSION_SECONDS = 60
RAPID_SUCCESSION_MIN_PAIRS = 5

MAX_SCORE = 100

# ── Factor labels ─────────────────────────────────────────────────────────────

HIGH_FREQUENCY = "High transaction frequency"
LARGE_BALANCE = "Large balance holder"
RECENT = "Very recent activity"
ROUND_NUMBERS = "Suspicious round number transactions"
RAPID_SUCCESSION = "Rapid succession transactions detected"

# Per-transaction flags
TX_ROUND_NUMBER = "Round number value"
TX_RAPID_SUCCESSION = "Rapid succession"


def is_round_number(value: Decimal) -> bool:
    """Whole number of BTC, at least 1."""
    return value >= 1 and value % 1 == 0


def count_round_numbers(transactions: list[Transaction]) -> int:
    return sum(1 for tx in transactions if is_round_number(tx.value))


def rapid_pair_indices(transactions: list[Transaction]) -> list[int]:
    """
    Indices i (≥ 1) where transactions[i-1] and transactions[i] are less than
    RAPID_SUCCESSION_SECONDS apart. Assumes newest-first order.
    """
    return [
        i
        for i in range(1, len(transactions))
        if transactions[i - 1].time - transactions[i].time < RAPID_SUCCESSION_SECONDS
    ]


# ── Composite scorer ──────────────────────────────────────────────────────────


def assess_risk(
    merged: MergedWalletData,
    now: datetime | None = None,
) -> tuple[int, list[str]]:
    """
    Score a merged wallet record.

    Args:
        merged: Reconciled provider data; transactions sorted newest-first.
        now: Reference time for the recency rule (defaults to current UTC).

    Returns:
        (risk_score, risk_factors) with risk_score in 0–100.
    """
    now = now or datetime.now(tz=timezone.utc)
    score = 0
    factors: list[str] = []

    if merged.transaction_count > HIGH_FREQUENCY_TX_COUNT:
        score += 20
        factors.append(HIGH_FREQUENCY)

    if merged.balance > LARGE_BALANCE_BTC:
        score += 15
        factors.append(LARGE_BALANCE)

    if merged.last_seen is not None and now - merged.last_seen < RECENT_ACTIVITY:
        score += 10
        factors.append(RECENT)

    txns = merged.transactions
    if count_round_numbers(txns) > len(txns) * ROUND_NUMBER_SHARE:
        score += 25
        factors.append(ROUND_NUMBERS)

    if len(rapid_pair_indices(txns)) > RAPID_SUCCESSION_MIN_PAIRS:
        score += 20
        factors.append(RAPID_SUCCESSION)

    return max(0, min(MAX_SCORE, score)), factors


def flag_transactions(transactions: list[Transaction]) -> list[Transaction]:
    """
    Return copies of `transactions` with per-transaction risk flags set.

    A transaction is flagged "Round number value" when it moves a whole number
    of BTC, and "Rapid succession" when it sits less than a minute from its
    neighbour in the newest-first list. Input objects are not modified.
    """
    rapid: set[int] = set()
    for i in rapid_pair_indices(transactions):
        rapid.update((i - 1, i))

    flagged: list[Transaction] = []
    for i, tx in enumerate(transactions):
        flags = list(tx.risk_flags)
        if is_round_number(tx.value) and TX_ROUND_NUMBER not in flags:
            flags.append(TX_ROUND_NUMBER)
        if i in rapid and TX_RAPID_SUCCESSION not in flags:
            flags.append(TX_RAPID_SUCCESSION)
        flagged.append(dataclasses.replace(tx, risk_flags=flags))
    return flagged


def score_to_severity(score: int) -> str:
    """
    Map a risk score to a display band.

    Returns:
        "high" (60+), "medium" (30–59) or "low" (<30)
    """
    if score >= 60:
        return "high"
    elif score >= 30:
        return "medium"
    return "low"

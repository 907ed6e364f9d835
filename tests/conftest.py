"""Pytest fixtures shared across all walletlens tests."""

from __future__ import annotations

import os
from typing import Any

import httpx
import pytest
import pytest_asyncio

from walletlens.cache import TTLCache
from walletlens.config import (
    APIConfig,
    CacheConfig,
    OutputConfig,
    ProvidersConfig,
    WalletlensConfig,
)
from walletlens.ratelimit import RateLimiter

ADDRESS = "bc1qxy2kgdygjrsqtzq2n0yrf2493p83kkfjhx0wlh"
SENDER = "1BoatSLRHtKNngkdXEeobR76b53LETtpyT"
RECEIVER = "3J98t1WpEZ73CNmQviecrnyiWrnqRhWNLy"

SATS = 100_000_000


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ── Config fixtures ───────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Keep the developer's WALLETLENS_* settings and config file out of tests."""
    for var in list(os.environ):
        if var.startswith("WALLETLENS_"):
            monkeypatch.delenv(var)
    monkeypatch.setenv("WALLETLENS_CONFIG_PATH", str(tmp_path / "missing-config.toml"))


@pytest.fixture
def sample_config() -> WalletlensConfig:
    """Minimal valid WalletlensConfig for tests."""
    return WalletlensConfig(
        api=APIConfig(blockcypher_token="test_token_12345", blockchair_key=""),
        providers=ProvidersConfig(timeout_seconds=5.0, price_lookup=False),
        cache=CacheConfig(ttl_seconds=300.0),
        output=OutputConfig(default_format="json", color=False),
    )


# ── Shared service fixtures ───────────────────────────────────────────────────


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache() -> TTLCache:
    return TTLCache()


@pytest.fixture
def rate_limiter() -> RateLimiter:
    return RateLimiter()


@pytest_asyncio.fixture
async def http_client() -> httpx.AsyncClient:
    client = httpx.AsyncClient(timeout=5.0)
    yield client
    await client.aclose()


# ── Provider payload builders ─────────────────────────────────────────────────


def blockchain_info_tx(
    tx_hash: str,
    time: int,
    result_sats: int,
    fee_sats: int = 1_000,
    sender: str = SENDER,
    receiver: str = ADDRESS,
) -> dict[str, Any]:
    return {
        "hash": tx_hash,
        "time": time,
        "result": result_sats,
        "fee": fee_sats,
        "confirmations": 6,
        "inputs": [{"prev_out": {"addr": sender, "value": abs(result_sats) + fee_sats}}],
        "out": [{"addr": receiver, "value": abs(result_sats)}],
    }


def blockchain_info_payload(
    balance_sats: int = SATS,
    n_tx: int = 1,
    txs: list[dict[str, Any]] | None = None,
    total_received: int | None = None,
    total_sent: int = 0,
) -> dict[str, Any]:
    return {
        "address": ADDRESS,
        "final_balance": balance_sats,
        "n_tx": n_tx,
        "total_received": balance_sats if total_received is None else total_received,
        "total_sent": total_sent,
        "txs": txs or [],
    }


def blockcypher_tx(
    tx_hash: str,
    received: str,
    total_sats: int,
    fees_sats: int = 1_000,
    sender: str = SENDER,
    receivers: tuple[str, ...] = (ADDRESS,),
) -> dict[str, Any]:
    return {
        "hash": tx_hash,
        "received": received,
        "total": total_sats,
        "fees": fees_sats,
        "confirmations": 3,
        "inputs": [{"addresses": [sender], "output_value": total_sats + fees_sats}],
        "outputs": [{"addresses": list(receivers), "value": total_sats}],
    }


def blockcypher_payload(
    balance_sats: int = SATS,
    n_tx: int = 1,
    txs: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    return {
        "address": ADDRESS,
        "balance": balance_sats,
        "n_tx": n_tx,
        "total_received": balance_sats,
        "total_sent": 0,
        "txs": txs or [],
    }


def blockstream_summary(
    funded_sats: int = SATS, spent_sats: int = 0, tx_count: int = 1
) -> dict[str, Any]:
    return {
        "address": ADDRESS,
        "chain_stats": {
            "funded_txo_count": tx_count,
            "funded_txo_sum": funded_sats,
            "spent_txo_count": 0,
            "spent_txo_sum": spent_sats,
            "tx_count": tx_count,
        },
        "mempool_stats": {"funded_txo_sum": 0, "spent_txo_sum": 0, "tx_count": 0},
    }


def blockstream_tx(
    txid: str,
    block_time: int | None,
    out_sats: list[int],
    fee_sats: int = 500,
    sender: str = SENDER,
) -> dict[str, Any]:
    confirmed = block_time is not None
    status: dict[str, Any] = {"confirmed": confirmed}
    if confirmed:
        status["block_time"] = block_time
    return {
        "txid": txid,
        "fee": fee_sats,
        "status": status,
        "vin": [{"prevout": {"scriptpubkey_address": sender, "value": sum(out_sats) + fee_sats}}],
        "vout": [{"scriptpubkey_address": ADDRESS, "value": v} for v in out_sats],
    }


def blockchair_payload(
    balance_sats: int = SATS,
    tx_count: int = 1,
    first_seen: str | None = "2020-01-01 00:00:00",
    last_received: str | None = "2024-01-01 00:00:00",
    last_spent: str | None = None,
) -> dict[str, Any]:
    return {
        "data": {
            ADDRESS: {
                "address": {
                    "type": "witness_v0_keyhash",
                    "balance": balance_sats,
                    "received": balance_sats,
                    "spent": 0,
                    "transaction_count": tx_count,
                    "first_seen_receiving": first_seen,
                    "last_seen_receiving": last_received,
                    "first_seen_spending": None,
                    "last_seen_spending": last_spent,
                },
                "transactions": ["a" * 64],
                "utxo": [],
            }
        },
        "context": {"code": 200},
    }

"""
BlockCypher adapter — /addrs/{address}/full endpoint.

Works without a token at a low quota; api.blockcypher_token raises it.

Response fields used:
- balance, n_tx, total_received, total_sent (satoshis)
- txs[]: hash, received (ISO8601), total, fees, confirmations,
  inputs[].{addresses, output_value}, outputs[].{addresses, value}

Inputs and outputs can list several addresses (multisig); the transaction
model keeps the first, the counterparty list keeps all of them.
"""

from __future__ import annotations

from typing import Any

import httpx

from walletlens.cache import DEFAULT_TTL_SECONDS, TTLCache
from walletlens.models import AddressSnapshot, Transaction, TxIO
from walletlens.providers.base import (
    TX_LIMIT,
    AddressProvider,
    history_bounds,
    parse_utc,
    sats_to_btc,
)
from walletlens.ratelimit import RateLimiter

BLOCKCYPHER_BASE = "https://api.blockcypher.com/v1/btc/main"


def _first(addresses: list[str] | None) -> str | None:
    return addresses[0] if addresses else None


class BlockCypherAdapter(AddressProvider):
    name = "blockcypher"

    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: TTLCache,
        rate_limiter: RateLimiter,
        cache_ttl: float = DEFAULT_TTL_SECONDS,
        token: str = "",
    ) -> None:
        super().__init__(client, cache, rate_limiter, cache_ttl)
        self._token = token

    async def _request(self, address: str) -> Any:
        params: dict[str, Any] = {"limit": TX_LIMIT}
        if self._token:
            params["token"] = self._token
        return await self._get_json(f"{BLOCKCYPHER_BASE}/addrs/{address}/full", params=params)

    def normalize(self, payload: Any) -> AddressSnapshot:
        transactions, counterparties = self._parse_transactions(
            payload.get("txs") or [], self._parse_tx, addresses_of=self._addresses
        )
        n_tx = int(payload.get("n_tx") or 0)
        first_seen, last_seen = history_bounds(transactions, n_tx)

        return AddressSnapshot(
            balance=sats_to_btc(payload.get("balance")),
            transaction_count=n_tx,
            total_received=sats_to_btc(payload.get("total_received")),
            total_sent=sats_to_btc(payload.get("total_sent")),
            first_seen=first_seen,
            last_seen=last_seen,
            transactions=transactions,
            counterparties=counterparties,
        )

    @staticmethod
    def _addresses(raw: dict[str, Any]) -> list[str]:
        addresses: list[str] = []
        for io in (raw.get("inputs") or []) + (raw.get("outputs") or []):
            addresses.extend(io.get("addresses") or [])
        return addresses

    @staticmethod
    def _parse_tx(raw: dict[str, Any]) -> Transaction:
        return Transaction(
            hash=raw["hash"],
            time=int(parse_utc(raw["received"]).timestamp()),
            value=sats_to_btc(raw.get("total")),
            fee=sats_to_btc(raw.get("fees")),
            confirmations=int(raw.get("confirmations") or 0),
            inputs=[
                TxIO(address=_first(i.get("addresses")), value=sats_to_btc(i.get("output_value")))
                for i in raw.get("inputs") or []
            ],
            outputs=[
                TxIO(address=_first(o.get("addresses")), value=sats_to_btc(o.get("value")))
                for o in raw.get("outputs") or []
            ],
        )

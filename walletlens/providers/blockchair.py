"""
Blockchair adapter — /bitcoin/dashboards/address endpoint.

The only provider that reports first/last activity directly. Its
transaction list holds bare hashes, so it contributes no Transaction
records and no counterparties.

Response shape:
    {"data": {"<address>": {"address": {balance, received, spent,
      transaction_count, first_seen_receiving, last_seen_receiving,
      last_seen_spending}, "transactions": ["<hash>", ...]}}, "context": {...}}

Timestamps are UTC "YYYY-MM-DD HH:MM:SS"; null means "never".
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import httpx

from walletlens.cache import DEFAULT_TTL_SECONDS, TTLCache
from walletlens.models import AddressSnapshot
from walletlens.providers.base import TX_LIMIT, AddressProvider, parse_utc, sats_to_btc
from walletlens.ratelimit import RateLimiter

BLOCKCHAIR_BASE = "https://api.blockchair.com/bitcoin"


def _parse_optional(value: str | None) -> datetime | None:
    return parse_utc(value) if value else None


class BlockchairAdapter(AddressProvider):
    name = "blockchair"

    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: TTLCache,
        rate_limiter: RateLimiter,
        cache_ttl: float = DEFAULT_TTL_SECONDS,
        api_key: str = "",
    ) -> None:
        super().__init__(client, cache, rate_limiter, cache_ttl)
        self._api_key = api_key

    async def _request(self, address: str) -> Any:
        params: dict[str, Any] = {"limit": TX_LIMIT}
        if self._api_key:
            params["key"] = self._api_key
        return await self._get_json(
            f"{BLOCKCHAIR_BASE}/dashboards/address/{address}", params=params
        )

    def normalize(self, payload: Any) -> AddressSnapshot:
        entries = payload["data"]
        if not entries:
            raise KeyError("data")
        # Dashboards for a single address hold exactly one entry
        info = next(iter(entries.values()))["address"]

        receiving = _parse_optional(info.get("last_seen_receiving"))
        spending = _parse_optional(info.get("last_seen_spending"))
        seen = [dt for dt in (receiving, spending) if dt is not None]

        return AddressSnapshot(
            balance=sats_to_btc(info.get("balance")),
            transaction_count=int(info.get("transaction_count") or 0),
            total_received=sats_to_btc(info.get("received")),
            total_sent=sats_to_btc(info.get("spent")),
            first_seen=_parse_optional(info.get("first_seen_receiving")),
            last_seen=max(seen) if seen else None,
        )

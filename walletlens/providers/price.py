"""
BTC spot price lookup — CoinGecko /simple/price.

Auxiliary provider: used to express the merged balance in fiat. It has its
own rate budget ("bitcoin-price") and cache entry, but it is not an address
provider and never counts toward confidence or data quality.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import httpx

from walletlens.cache import TTLCache
from walletlens.models import ProviderResult
from walletlens.providers.base import ProviderClient
from walletlens.ratelimit import RateLimiter

COINGECKO_PRICE_URL = "https://api.coingecko.com/api/v3/simple/price"

PRICE_CACHE_TTL = 60.0


class PriceProvider(ProviderClient):
    name = "bitcoin-price"

    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: TTLCache,
        rate_limiter: RateLimiter,
        cache_ttl: float = PRICE_CACHE_TTL,
        currency: str = "usd",
    ) -> None:
        super().__init__(client, cache, rate_limiter, cache_ttl)
        self._currency = currency.lower()

    async def fetch_price(self) -> ProviderResult:
        """Current BTC price; `normalized` is a Decimal on success."""
        return await self._guarded(
            (self.name, self._currency),
            lambda: self._get_json(
                COINGECKO_PRICE_URL,
                params={"ids": "bitcoin", "vs_currencies": self._currency},
            ),
            self._parse_price,
        )

    def _parse_price(self, payload: Any) -> Decimal:
        price = Decimal(str(payload["bitcoin"][self._currency]))
        if price <= 0:
            raise ValueError(f"non-positive price {price}")
        return price

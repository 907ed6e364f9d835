"""Base provider classes and shared parsing helpers.

Every lookup follows the same sequence:

  1. cache hit      → success, cached payload, no network, no budget spent
  2. budget empty   → failure "Rate limit exceeded", no network
  3. HTTP request(s) via the shared httpx.AsyncClient
  4. parse          → AddressSnapshot, price, ... (provider field names stay in here)
  5. cache the raw payload, return success

Any ProviderError or NetworkError raised in steps 2–4 is converted into a
failed ProviderResult. Adapters are NOT responsible for merging, scoring or
network analysis.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Hashable, Iterable
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar

import httpx

from walletlens.cache import DEFAULT_TTL_SECONDS, TTLCache
from walletlens.exceptions import (
    ConnectionFailedError,
    NetworkError,
    NetworkTimeoutError,
    ProviderError,
    ProviderFetchError,
    RateLimitExceeded,
)
from walletlens.models import AddressSnapshot, ProviderResult, Transaction
from walletlens.ratelimit import RateLimiter

logger = logging.getLogger(__name__)

SATOSHIS_PER_BTC = Decimal(100_000_000)

# Transactions requested from (and kept per) provider
TX_LIMIT = 50

# Errors that mean "this field/record is not shaped the way we expect"
PARSE_ERRORS = (KeyError, ValueError, TypeError, AttributeError, IndexError, InvalidOperation)


def sats_to_btc(value: Any) -> Decimal:
    """Convert an integer satoshi amount (None → 0) to BTC."""
    return Decimal(int(value or 0)) / SATOSHIS_PER_BTC


def parse_utc(value: str) -> datetime:
    """Parse an ISO-ish UTC timestamp ("2024-01-02T03:04:05Z", "2024-01-02 03:04:05")."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def history_bounds(
    transactions: list[Transaction], reported_count: int | None
) -> tuple[datetime | None, datetime | None]:
    """
    Derive (first_seen, last_seen) from a provider's transaction page.

    last_seen is the newest transaction. first_seen is only claimed when the
    page holds the complete history; otherwise the oldest entry is just the
    edge of the page.
    """
    if not transactions:
        return None, None
    times = [t.time for t in transactions]
    last_seen = datetime.fromtimestamp(max(times), tz=timezone.utc)
    first_seen = None
    if reported_count is not None and len(transactions) >= reported_count:
        first_seen = datetime.fromtimestamp(min(times), tz=timezone.utc)
    return first_seen, last_seen


def unique(addresses: Iterable[str | None]) -> list[str]:
    """Drop empties and duplicates, keeping first-seen order."""
    return list(dict.fromkeys(a for a in addresses if a))


class ProviderClient:
    """
    Plumbing shared by every provider: cache, rate budget, HTTP, parsing.

    Subclasses set `name`; lookups go through `_guarded()`.
    """

    name: ClassVar[str] = ""

    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: TTLCache,
        rate_limiter: RateLimiter,
        cache_ttl: float = DEFAULT_TTL_SECONDS,
    ) -> None:
        self._client = client
        self._cache = cache
        self._rate_limiter = rate_limiter
        self._cache_ttl = cache_ttl

    # ──────────────────────────────────────────────────────────────
    # Shared helpers
    # ──────────────────────────────────────────────────────────────

    async def _guarded(
        self,
        cache_key: Hashable,
        request: Callable[[], Awaitable[Any]],
        parse: Callable[[Any], Any],
    ) -> ProviderResult:
        cached = self._cache.get(cache_key)
        if cached is not None:
            try:
                normalized = self._parse(parse, cached)
            except ProviderFetchError:
                # Stale shape in cache; fall through to a fresh request
                self._cache.delete(cache_key)
            else:
                logger.debug("%s: cache hit for %s", self.name, cache_key)
                return ProviderResult(
                    source=self.name,
                    success=True,
                    data=cached,
                    normalized=normalized,
                    timestamp=time.time(),
                    from_cache=True,
                )

        try:
            if not self._rate_limiter.try_acquire(self.name):
                raise RateLimitExceeded("Rate limit exceeded")
            payload = await request()
            normalized = self._parse(parse, payload)
        except (ProviderError, NetworkError) as e:
            logger.warning("%s: fetch failed for %s: %s", self.name, cache_key, e.message)
            result = ProviderResult.failed(self.name, e.message, time.time())
            result.remaining = self._rate_limiter.get_remaining_requests(self.name)
            return result

        self._cache.set(cache_key, payload, ttl=self._cache_ttl)
        return ProviderResult(
            source=self.name,
            success=True,
            data=payload,
            normalized=normalized,
            timestamp=time.time(),
            remaining=self._rate_limiter.get_remaining_requests(self.name),
        )

    def _parse(self, parse: Callable[[Any], Any], payload: Any) -> Any:
        try:
            return parse(payload)
        except PARSE_ERRORS as e:
            raise ProviderFetchError(
                f"{self.name}: unexpected response shape ({type(e).__name__}: {e})"
            ) from e

    async def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """GET `url` and decode JSON, mapping transport and status failures."""
        try:
            resp = await self._client.get(url, params=params)
        except httpx.TimeoutException as e:
            raise NetworkTimeoutError(f"{self.name} timeout: {e}") from e
        except httpx.ConnectError as e:
            raise ConnectionFailedError(f"Cannot connect to {self.name}: {e}") from e
        except httpx.HTTPError as e:
            raise ProviderFetchError(f"{self.name} request failed: {e}") from e

        if resp.status_code == 429:
            retry_after = resp.headers.get("Retry-After", "")
            raise RateLimitExceeded(
                f"{self.name} rate limit exceeded (HTTP 429)",
                retry_after=int(retry_after) if retry_after.isdigit() else 60,
            )
        if not resp.is_success:
            raise ProviderFetchError(f"HTTP {resp.status_code}: {resp.reason_phrase}")

        try:
            return resp.json()
        except ValueError as e:
            raise ProviderFetchError(f"{self.name} returned invalid JSON: {e}") from e

    def _parse_transactions(
        self,
        raw_txs: Any,
        parse_one: Callable[[dict[str, Any]], Transaction],
        addresses_of: Callable[[dict[str, Any]], Iterable[str | None]] | None = None,
    ) -> tuple[list[Transaction], list[str]]:
        """
        Parse a list of raw transactions, skipping malformed entries.

        Returns the parsed transactions and their counterparty addresses.
        Counterparties come from the parsed inputs and outputs unless
        `addresses_of` extracts them from the raw entry instead. A skipped
        entry contributes neither.
        """
        if not isinstance(raw_txs, list):
            return [], []
        txns: list[Transaction] = []
        counterparties: list[str | None] = []
        for raw in raw_txs[:TX_LIMIT]:
            try:
                t = parse_one(raw)
                if addresses_of is not None:
                    seen = list(addresses_of(raw))
                else:
                    seen = [io.address for io in t.inputs + t.outputs]
            except PARSE_ERRORS:
                logger.debug("%s: skipping malformed transaction", self.name)
                continue
            t.source = self.name
            txns.append(t)
            counterparties.extend(seen)
        return txns, unique(counterparties)


class AddressProvider(ProviderClient, ABC):
    """
    A provider of address summaries and transactions.

    Subclasses implement `_request()` and `normalize()`.
    """

    async def fetch(self, address: str) -> ProviderResult:
        """Fetch and normalise data for `address`. Never raises provider errors."""
        return await self._guarded(
            (self.name, address),
            lambda: self._request(address),
            self.normalize,
        )

    @abstractmethod
    async def _request(self, address: str) -> Any:
        """Issue the provider's HTTP request(s) and return the raw payload."""

    @abstractmethod
    def normalize(self, payload: Any) -> AddressSnapshot:
        """Translate the provider's raw payload into an AddressSnapshot."""

"""Multi-provider wallet analysis.

WalletAnalyzer fans out to every configured provider adapter at once, waits
for all of them to settle, merges whatever succeeded and scores the result.

Merge policy (documented heuristic, not a proof of on-chain truth):
  - balance, transaction count, total received, total sent: maximum reported
    by any successful provider (providers tend to under-report pending state)
  - first seen: earliest reported; last seen: latest reported
  - transactions: union deduplicated by hash (first provider in configured
    order wins), newest first, 50 most recent kept

The maximum is taken per field, so one record can combine a balance from one
provider with a transaction count from another.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Sequence
from datetime import datetime, timezone
from decimal import Decimal

import httpx

from walletlens.cache import DEFAULT_SWEEP_INTERVAL_SECONDS, TTLCache
from walletlens.config import WalletlensConfig, load_config
from walletlens.exceptions import AllProvidersFailedError
from walletlens.models import (
    AddressSnapshot,
    AggregatedWalletData,
    ApiStatus,
    MergedWalletData,
    ProviderResult,
    Transaction,
)
from walletlens.network import analyze_network
from walletlens.providers import AddressProvider, PriceProvider, build_providers
from walletlens.ratelimit import RateLimiter
from walletlens.risk import assess_risk, flag_transactions

logger = logging.getLogger(__name__)

MAX_TRANSACTIONS = 50
DEFAULT_PROVIDER_TIMEOUT = 10.0

USER_AGENT = "walletlens"


def compute_confidence(successes: int, total: int) -> int:
    """Percentage of configured providers that contributed (0–100)."""
    if total <= 0:
        return 0
    return max(0, min(100, round(successes / total * 100)))


def assess_data_quality(successes: int) -> str:
    """Coarse label for the number of contributing providers."""
    if successes >= 3:
        return "high"
    elif successes == 2:
        return "medium"
    return "low"


def merge_results(address: str, results: Sequence[ProviderResult]) -> MergedWalletData:
    """
    Reconcile successful provider results into one record.

    Failed results are ignored. Numeric fields default to 0 when no provider
    reports them.
    """
    balance = Decimal(0)
    tx_count = 0
    received = Decimal(0)
    sent = Decimal(0)
    first_seen: datetime | None = None
    last_seen: datetime | None = None
    by_hash: dict[str, Transaction] = {}
    sources: list[str] = []

    for result in results:
        if not result.success:
            continue
        snap: AddressSnapshot = result.normalized
        sources.append(result.source)

        if snap.balance is not None:
            balance = max(balance, snap.balance)
        if snap.transaction_count is not None:
            tx_count = max(tx_count, snap.transaction_count)
        if snap.total_received is not None:
            received = max(received, snap.total_received)
        if snap.total_sent is not None:
            sent = max(sent, snap.total_sent)

        if snap.first_seen is not None and (first_seen is None or snap.first_seen < first_seen):
            first_seen = snap.first_seen
        if snap.last_seen is not None and (last_seen is None or snap.last_seen > last_seen):
            last_seen = snap.last_seen

        for tx in snap.transactions:
            by_hash.setdefault(tx.hash, tx)

    # sorted() is stable: equal timestamps keep provider order
    transactions = sorted(by_hash.values(), key=lambda t: t.time, reverse=True)

    return MergedWalletData(
        address=address,
        balance=balance,
        transaction_count=tx_count,
        total_received=received,
        total_sent=sent,
        first_seen=first_seen,
        last_seen=last_seen,
        transactions=transactions[:MAX_TRANSACTIONS],
        sources=sources,
    )


class WalletAnalyzer:
    """
    Service handle owning the providers, cache and rate limiter.

    Construct directly to inject your own pieces (tests, custom providers) or
    use from_config() for the default wiring. Use as an async context manager
    to run the cache sweeper and close the HTTP client:

        async with WalletAnalyzer.from_config(config) as analyzer:
            data = await analyzer.analyze_wallet(address)
    """

    def __init__(
        self,
        providers: Sequence[AddressProvider],
        cache: TTLCache,
        rate_limiter: RateLimiter,
        price_provider: PriceProvider | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_PROVIDER_TIMEOUT,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    ) -> None:
        if not providers:
            raise ValueError("WalletAnalyzer needs at least one provider")
        self._providers = list(providers)
        self._cache = cache
        self._rate_limiter = rate_limiter
        self._price_provider = price_provider
        self._client = client
        self._timeout = timeout
        self._sweep_interval = sweep_interval

    @classmethod
    def from_config(cls, config: WalletlensConfig) -> WalletAnalyzer:
        """Build the default wiring: one shared cache, limiter and HTTP client."""
        cache = TTLCache(
            default_ttl=config.cache.ttl_seconds,
            max_entries=config.cache.max_entries,
        )
        rate_limiter = RateLimiter(
            config.rate_limits.limits,
            window_seconds=config.rate_limits.window_seconds,
        )
        client = httpx.AsyncClient(
            timeout=config.providers.request_timeout_seconds,
            headers={"Accept": "application/json", "User-Agent": USER_AGENT},
        )
        price_provider = (
            PriceProvider(client, cache, rate_limiter) if config.providers.price_lookup else None
        )
        return cls(
            build_providers(config, client, cache, rate_limiter),
            cache,
            rate_limiter,
            price_provider=price_provider,
            client=client,
            timeout=config.providers.timeout_seconds,
            sweep_interval=config.cache.sweep_interval_seconds,
        )

    @property
    def provider_names(self) -> list[str]:
        return [p.name for p in self._providers]

    # ──────────────────────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────────────────────

    async def start(self) -> None:
        """Start the periodic cache sweep."""
        self._cache.start_sweeper(self._sweep_interval)

    async def close(self) -> None:
        """Stop the sweep and close the HTTP client (if one was handed over)."""
        await self._cache.stop_sweeper()
        if self._client is not None:
            await self._client.aclose()

    async def __aenter__(self) -> WalletAnalyzer:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ──────────────────────────────────────────────────────────────
    # Public API
    # ──────────────────────────────────────────────────────────────

    async def analyze_wallet(self, address: str) -> AggregatedWalletData:
        """
        Analyze `address` across all configured providers.

        Returns:
            A fully built AggregatedWalletData.

        Raises:
            AllProvidersFailedError: No provider returned usable data.
        """
        calls: list[Awaitable[ProviderResult]] = [
            self._settle(p.name, p.fetch(address)) for p in self._providers
        ]
        if self._price_provider is not None:
            calls.append(self._settle(self._price_provider.name, self._price_provider.fetch_price()))

        settled = await asyncio.gather(*calls)
        results = settled[: len(self._providers)]
        price_result = settled[len(self._providers)] if self._price_provider is not None else None

        successes = [r for r in results if r.success]
        errors = {r.source: r.error or "unknown error" for r in results if not r.success}
        logger.info(
            "%s: %d/%d providers succeeded", address, len(successes), len(self._providers)
        )

        if not successes:
            logger.error("%s: all providers failed: %s", address, errors)
            raise AllProvidersFailedError(
                f"All {len(self._providers)} providers failed for {address}", errors
            )

        merged = merge_results(address, successes)
        risk_score, risk_factors = assess_risk(merged)
        network = analyze_network(r.normalized.counterparties for r in successes)

        price: Decimal | None = None
        if price_result is not None and price_result.success:
            price = price_result.normalized

        return AggregatedWalletData(
            address=address,
            balance=merged.balance,
            transaction_count=merged.transaction_count,
            first_seen=merged.first_seen,
            last_seen=merged.last_seen,
            total_received=merged.total_received,
            total_sent=merged.total_sent,
            risk_score=risk_score,
            risk_factors=risk_factors,
            confidence=compute_confidence(len(successes), len(self._providers)),
            data_quality=assess_data_quality(len(successes)),
            api_sources=merged.sources,
            transactions=flag_transactions(merged.transactions),
            network_analysis=network,
            provider_errors=errors,
            btc_price_usd=price,
            balance_usd=(merged.balance * price).quantize(Decimal("0.01")) if price else None,
            analyzed_at=datetime.now(tz=timezone.utc).isoformat(),
        )

    def get_api_status(self) -> list[ApiStatus]:
        """Rate budget per provider (address providers, then the price lookup)."""
        names = self.provider_names
        if self._price_provider is not None:
            names.append(self._price_provider.name)

        statuses: list[ApiStatus] = []
        for name in names:
            # can_make_request first: it rolls an expired window
            healthy = self._rate_limiter.can_make_request(name)
            statuses.append(
                ApiStatus(
                    name=name,
                    remaining=self._rate_limiter.get_remaining_requests(name),
                    max_requests=self._rate_limiter.max_requests(name),
                    status="healthy" if healthy else "limited",
                    reset_in_seconds=round(self._rate_limiter.reset_in(name)),
                )
            )
        return statuses

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("Cache cleared")

    # ──────────────────────────────────────────────────────────────
    # Private helpers
    # ──────────────────────────────────────────────────────────────

    async def _settle(self, name: str, call: Awaitable[ProviderResult]) -> ProviderResult:
        """Await one provider call, bounding it by the deadline."""
        try:
            if self._timeout > 0:
                return await asyncio.wait_for(call, self._timeout)
            return await call
        except asyncio.TimeoutError:
            logger.warning("%s: no answer within %gs", name, self._timeout)
            return ProviderResult.failed(name, f"Timed out after {self._timeout:g}s", time.time())
        except Exception as e:
            # Adapters convert their own errors; anything reaching here is a bug
            logger.exception("%s: unexpected failure", name)
            return ProviderResult.failed(name, f"Unexpected error: {e}", time.time())


async def analyze_wallet(
    address: str, config: WalletlensConfig | None = None
) -> AggregatedWalletData:
    """One-off analysis with a short-lived analyzer (cache does not outlive the call)."""
    async with WalletAnalyzer.from_config(config or load_config()) as analyzer:
        return await analyzer.analyze_wallet(address)

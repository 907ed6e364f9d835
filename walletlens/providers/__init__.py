"""
Provider layer for walletlens.

Provides a factory `get_provider()` that returns the adapter for one
provider name, and `build_providers()` for the configured set. All address
adapters implement the same `fetch(address) -> ProviderResult` capability;
the analyzer never needs to know which one it is talking to.

Usage:
    from walletlens.providers import build_providers
    providers = build_providers(config, client, cache, rate_limiter)
    results = await asyncio.gather(*(p.fetch(address) for p in providers))
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from walletlens.config import KNOWN_PROVIDERS
from walletlens.providers.base import AddressProvider, ProviderClient
from walletlens.providers.blockchain_info import BlockchainInfoAdapter
from walletlens.providers.blockchair import BlockchairAdapter
from walletlens.providers.blockcypher import BlockCypherAdapter
from walletlens.providers.blockstream import BlockstreamAdapter
from walletlens.providers.price import PriceProvider

if TYPE_CHECKING:
    import httpx

    from walletlens.cache import TTLCache
    from walletlens.config import WalletlensConfig
    from walletlens.ratelimit import RateLimiter

__all__ = [
    "AddressProvider",
    "BlockCypherAdapter",
    "BlockchainInfoAdapter",
    "BlockchairAdapter",
    "BlockstreamAdapter",
    "PriceProvider",
    "ProviderClient",
    "build_providers",
    "get_provider",
]


def get_provider(
    name: str,
    config: WalletlensConfig,
    client: httpx.AsyncClient,
    cache: TTLCache,
    rate_limiter: RateLimiter,
) -> AddressProvider:
    """
    Factory: return the adapter for the given provider name.

    Raises:
        ValueError: Unknown provider name
    """
    name = name.lower()
    if name not in KNOWN_PROVIDERS:
        raise ValueError(f"Unsupported provider: {name!r}. Supported: {list(KNOWN_PROVIDERS)}")

    ttl = config.cache.ttl_seconds

    if name == "blockchain.info":
        return BlockchainInfoAdapter(client, cache, rate_limiter, cache_ttl=ttl)

    if name == "blockcypher":
        return BlockCypherAdapter(
            client, cache, rate_limiter, cache_ttl=ttl, token=config.api.blockcypher_token
        )

    if name == "blockstream":
        return BlockstreamAdapter(client, cache, rate_limiter, cache_ttl=ttl)

    if name == "blockchair":
        return BlockchairAdapter(
            client, cache, rate_limiter, cache_ttl=ttl, api_key=config.api.blockchair_key
        )

    raise ValueError(f"Unreachable: {name}")  # pragma: no cover


def build_providers(
    config: WalletlensConfig,
    client: httpx.AsyncClient,
    cache: TTLCache,
    rate_limiter: RateLimiter,
) -> list[AddressProvider]:
    """Adapters for every enabled provider, in configured order."""
    return [
        get_provider(name, config, client, cache, rate_limiter)
        for name in config.providers.enabled
    ]

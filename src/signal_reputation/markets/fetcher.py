"""Outcome Fetcher: cached market-resolution lookups across platforms."""

from __future__ import annotations

import logging

from signal_reputation.common.http import HttpClient
from signal_reputation.config import get_settings
from signal_reputation.errors import UpstreamFetchError
from signal_reputation.markets.cache import ResolutionCache
from signal_reputation.markets.models import MarketResolution, Platform
from signal_reputation.markets.providers import (
    KalshiProvider,
    MarketProvider,
    PolymarketProvider,
)

logger = logging.getLogger(__name__)


class OutcomeFetcher:
    """Fetch market resolutions, consulting the cache before each provider call.

    Returns None when a fetch fails (network error, timeout, non-2xx,
    malformed payload). None means "could not find out", which callers
    must keep distinct from ``resolved=False``. Failures are not cached.
    """

    def __init__(
        self,
        providers: dict[Platform, MarketProvider],
        cache: ResolutionCache,
    ) -> None:
        self._providers = providers
        self.cache = cache

    async def get_resolution(
        self, market_id: str, platform: Platform = Platform.POLYMARKET,
    ) -> MarketResolution | None:
        cached = self.cache.get(platform, market_id)
        if cached is not None:
            logger.debug("Resolution cache hit for %s:%s", platform.value, market_id)
            return cached

        provider = self._providers.get(platform)
        if provider is None:
            logger.error("No provider configured for platform %s", platform.value)
            return None

        try:
            raw = await provider.fetch_raw(market_id)
            resolution = provider.to_resolution(market_id, raw)
        except UpstreamFetchError as exc:
            logger.warning(
                "Failed to fetch %s resolution for %s: %s",
                platform.value, market_id, exc,
            )
            return None
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning(
                "Malformed %s payload for %s: %s", platform.value, market_id, exc,
            )
            return None

        self.cache.set(resolution)
        return resolution

    def clear_cache(self) -> None:
        self.cache.clear()


class ProviderClients:
    """Owns the HTTP clients behind the default provider set."""

    def __init__(self) -> None:
        settings = get_settings()
        self.polymarket = HttpClient(base_url=settings.polymarket_api_url)
        self.kalshi = HttpClient(base_url=settings.kalshi_api_url)

    def providers(self) -> dict[Platform, MarketProvider]:
        return {
            Platform.POLYMARKET: PolymarketProvider(self.polymarket),
            Platform.KALSHI: KalshiProvider(self.kalshi),
        }

    async def close(self) -> None:
        await self.polymarket.close()
        await self.kalshi.close()


def build_outcome_fetcher(
    clients: ProviderClients, cache: ResolutionCache | None = None,
) -> OutcomeFetcher:
    """Wire the default providers and a settings-sized cache."""
    if cache is None:
        cache = ResolutionCache(ttl_seconds=get_settings().resolution_cache_ttl)
    return OutcomeFetcher(clients.providers(), cache)

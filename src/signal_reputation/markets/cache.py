"""In-memory TTL cache for market resolutions."""

from __future__ import annotations

import logging
import time

from signal_reputation.common.types import Clock
from signal_reputation.markets.models import MarketResolution, Platform, cache_key

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 15 * 60


class ResolutionCache:
    """Process-wide resolution cache keyed by ``platform:market_id``.

    Entries older than ``ttl_seconds`` are treated as missing and dropped
    on access. Writes are last-writer-wins; concurrent writers for the same
    key within one TTL window store equivalent values.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Clock = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, MarketResolution]] = {}

    def get(self, platform: Platform, market_id: str) -> MarketResolution | None:
        key = cache_key(platform, market_id)
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, resolution = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        return resolution

    def set(self, resolution: MarketResolution) -> None:
        self._entries[resolution.cache_key] = (self._clock(), resolution)

    def purge_expired(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        now = self._clock()
        expired = [
            key for key, (stored_at, _) in self._entries.items()
            if now - stored_at >= self.ttl_seconds
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Purged %d expired resolution(s)", len(expired))
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

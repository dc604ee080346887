"""Market resolution models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from signal_reputation.common.types import JsonDict


class Platform(Enum):
    """Upstream prediction-market provider."""

    POLYMARKET = "polymarket"
    KALSHI = "kalshi"

    @classmethod
    def parse(cls, value: str | None) -> Platform | None:
        """Case-insensitive lookup; None for empty or unknown values."""
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


def cache_key(platform: Platform, market_id: str) -> str:
    return f"{platform.value}:{market_id}"


@dataclass
class MarketResolution:
    """Authoritative settlement state of one market, as reported by its platform.

    Attributes:
        market_id: Provider market identifier
        platform: Provider the state was fetched from
        resolved: Whether the provider considers the market settled
        outcome: Settled value ("YES"/"NO", or a raw provider value), None if open
        resolved_at: Settlement time in epoch seconds
        raw: Provider payload, kept for diagnostics
    """

    market_id: str
    platform: Platform
    resolved: bool
    outcome: str | None = None
    resolved_at: int | None = None
    raw: JsonDict = field(default_factory=dict, repr=False)

    @property
    def cache_key(self) -> str:
        return cache_key(self.platform, self.market_id)

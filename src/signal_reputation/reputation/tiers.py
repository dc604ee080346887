"""Reputation tiers derived from win rate."""

from __future__ import annotations

from enum import Enum


class Tier(Enum):
    """Named reputation rank. Values are (label, emoji, color)."""

    SAGE = ("Sage", "\U0001f451", "gold")
    ELITE_ANALYST = ("Elite Analyst", "\U0001f31f", "blue")
    FORECASTER = ("Forecaster", "\U0001f3af", "green")
    PREDICTOR = ("Predictor", "\U0001f4ca", "gray")
    NOVICE = ("Novice", "\U0001f331", "silver")

    @property
    def label(self) -> str:
        return self.value[0]

    @property
    def emoji(self) -> str:
        return self.value[1]

    @property
    def color(self) -> str:
        return self.value[2]


# Inclusive lower bounds, highest first; first match wins.
TIER_THRESHOLDS: tuple[tuple[float, Tier], ...] = (
    (0.85, Tier.SAGE),
    (0.75, Tier.ELITE_ANALYST),
    (0.60, Tier.FORECASTER),
    (0.50, Tier.PREDICTOR),
)


def tier_for(win_rate: float) -> Tier:
    """Map a win rate in [0, 1] to its tier."""
    for threshold, tier in TIER_THRESHOLDS:
        if win_rate >= threshold:
            return tier
    return Tier.NOVICE

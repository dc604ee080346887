"""User reputation models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from signal_reputation.reputation.tiers import Tier, tier_for


@dataclass
class ConfidenceBucket:
    """Win/loss record for one confidence level."""

    confidence: str
    wins: int
    losses: int
    market_title: str = ""

    @property
    def win_rate(self) -> float:
        total = self.wins + self.losses
        return self.wins / total if total else 0.0


@dataclass
class UserStats:
    """Per-user rollup of signal outcomes.

    ``win_count + loss_count <= total_predictions``; the remainder is
    pending signals plus resolved signals that carry no verdict.
    ``total_earnings`` is the sum of ``total_tips`` in the smallest unit.
    """

    user_address: str
    total_predictions: int = 0
    win_count: int = 0
    loss_count: int = 0
    pending_count: int = 0
    total_earnings: int = 0
    current_streak: int = 0
    longest_win_streak: int = 0
    calibration_score: float = 0.0
    best_confidence: ConfidenceBucket | None = None
    worst_confidence: ConfidenceBucket | None = None
    last_active: int | None = None

    @property
    def resolved_count(self) -> int:
        return self.win_count + self.loss_count

    @property
    def win_rate(self) -> float:
        return self.win_count / max(1, self.resolved_count)

    @property
    def tier(self) -> Tier:
        return tier_for(self.win_rate)

    def to_dict(self) -> dict[str, Any]:
        tier = self.tier
        return {
            "user_address": self.user_address,
            "total_predictions": self.total_predictions,
            "win_count": self.win_count,
            "loss_count": self.loss_count,
            "pending_count": self.pending_count,
            "win_rate": self.win_rate,
            "tier": {"name": tier.label, "emoji": tier.emoji, "color": tier.color},
            "total_earnings": self.total_earnings,
            "current_streak": self.current_streak,
            "longest_win_streak": self.longest_win_streak,
            "calibration_score": self.calibration_score,
            "best_confidence": _bucket_dict(self.best_confidence),
            "worst_confidence": _bucket_dict(self.worst_confidence),
            "last_active": self.last_active,
        }


def _bucket_dict(bucket: ConfidenceBucket | None) -> dict[str, Any] | None:
    if bucket is None:
        return None
    return {
        "confidence": bucket.confidence,
        "win_rate": bucket.win_rate,
        "market_title": bucket.market_title,
    }


@dataclass
class Ranking:
    """1-based leaderboard position of one address."""

    user_address: str
    rank: int
    total_users: int
    stats: UserStats

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_address": self.user_address,
            "rank": self.rank,
            "total_users": self.total_users,
            "stats": self.stats.to_dict(),
        }

"""Roll resolved signals up into per-user stats, rankings and leaderboards.

Signal rows are the source of truth: every read recomputes from them, and
the counters in ``user_stats`` are rewritten (replaced, never incremented)
from the recomputed values. Re-resolving or re-reading can therefore never
double count a signal.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from typing import Any, Iterable, Mapping

from signal_reputation.common.types import Clock, now_epoch
from signal_reputation.errors import InvalidTimeframeError, PersistenceError
from signal_reputation.reputation.models import ConfidenceBucket, Ranking, UserStats
from signal_reputation.signals.models import LOSS_VALUES, WIN_VALUES, Signal, is_terminal
from signal_reputation.signals.store import SignalStore

logger = logging.getLogger(__name__)

_TIMEFRAME = re.compile(r"^(\d+)\s*([hdw])$")
_UNIT_SECONDS = {"h": 3600, "d": 86400, "w": 7 * 86400}

# Accuracy a well-calibrated analyst should show at each confidence level
_EXPECTED_ACCURACY = {
    "VERY-HIGH": 90.0,
    "HIGH": 70.0,
    "MEDIUM": 50.0,
    "LOW": 30.0,
    "VERY-LOW": 10.0,
}


def parse_timeframe(timeframe: str | None) -> int | None:
    """Convert "24h" / "7d" / "2w" to seconds; "all" or None means no window."""
    if timeframe is None:
        return None
    value = timeframe.strip().lower()
    if value in ("", "all"):
        return None
    match = _TIMEFRAME.match(value)
    if not match or int(match.group(1)) == 0:
        raise InvalidTimeframeError(
            f"Invalid timeframe {timeframe!r}; expected e.g. '24h', '7d', '2w' or 'all'"
        )
    return int(match.group(1)) * _UNIT_SECONDS[match.group(2)]


def parse_tips(value: object) -> int:
    """Parse a string-encoded integer tip total; bad values count as 0."""
    if value is None or value == "":
        return 0
    try:
        return int(str(value).strip())
    except ValueError:
        try:
            return int(float(str(value)))
        except ValueError:
            logger.debug("Ignoring unparseable tip total %r", value)
            return 0


def calibration_score(buckets: Iterable[ConfidenceBucket]) -> float:
    """100 minus the mean gap between actual and expected accuracy per bucket."""
    errors = []
    for bucket in buckets:
        if bucket.wins + bucket.losses == 0:
            continue
        expected = _EXPECTED_ACCURACY.get(bucket.confidence.upper(), 50.0)
        errors.append(abs(bucket.win_rate * 100 - expected))
    if not errors:
        return 0.0
    return max(0.0, 100.0 - sum(errors) / len(errors))


def compute_user_stats(
    user_address: str, rows: Iterable[Mapping[str, Any]],
) -> UserStats:
    """Pure rollup over one user's signal rows, ordered newest resolution first."""
    stats = UserStats(user_address=user_address.lower())
    buckets: dict[str, ConfidenceBucket] = {}
    scored: list[bool] = []

    for row in rows:
        stats.total_predictions += 1
        stats.total_earnings += parse_tips(row.get("total_tips"))
        timestamp = row.get("timestamp")
        if timestamp is not None and (stats.last_active is None or timestamp > stats.last_active):
            stats.last_active = timestamp

        outcome = row.get("outcome")
        if not is_terminal(outcome):
            stats.pending_count += 1
            continue
        if outcome in WIN_VALUES:
            won = True
            stats.win_count += 1
        elif outcome in LOSS_VALUES:
            won = False
            stats.loss_count += 1
        else:
            # Raw YES/NO: resolved, but no verdict to score
            continue
        scored.append(won)

        confidence = (row.get("confidence") or "unknown").upper()
        bucket = buckets.setdefault(
            confidence,
            ConfidenceBucket(confidence, 0, 0, row.get("market_title") or ""),
        )
        if won:
            bucket.wins += 1
        else:
            bucket.losses += 1

    for won in scored:
        if not won:
            break
        stats.current_streak += 1

    run = 0
    for won in scored:
        run = run + 1 if won else 0
        stats.longest_win_streak = max(stats.longest_win_streak, run)

    if buckets:
        ordered = list(buckets.values())
        stats.best_confidence = max(ordered, key=lambda b: b.win_rate)
        stats.worst_confidence = min(ordered, key=lambda b: b.win_rate)
        stats.calibration_score = calibration_score(ordered)
    return stats


def stats_from_stored(row: Mapping[str, Any]) -> UserStats:
    """UserStats from a ``user_stats`` row (counters only)."""
    total = int(row["total_predictions"] or 0)
    wins = int(row["win_count"] or 0)
    losses = int(row["loss_count"] or 0)
    return UserStats(
        user_address=row["user_address"],
        total_predictions=total,
        win_count=wins,
        loss_count=losses,
        pending_count=max(0, total - wins - losses),
        total_earnings=int(row.get("total_earnings") or 0),
    )


def leaderboard_key(stats: UserStats) -> tuple[float, int, int, str]:
    """Sort key: win rate, then predictions, then earnings (all desc), then address."""
    return (
        -stats.win_rate,
        -stats.total_predictions,
        -stats.total_earnings,
        stats.user_address,
    )


def _group_by_author(rows: Iterable[Mapping[str, Any]]) -> dict[str, list[Mapping[str, Any]]]:
    grouped: dict[str, list[Mapping[str, Any]]] = defaultdict(list)
    for row in rows:
        grouped[row["author_address"].lower()].append(row)
    return grouped


class ReputationAggregator:
    """Per-user stats, rankings and leaderboards over the signal store."""

    def __init__(self, store: SignalStore, clock: Clock = now_epoch) -> None:
        self._store = store
        self._clock = clock

    async def get_user_stats(self, user_address: str) -> UserStats:
        """Recompute one user's stats from their signals and store the counters.

        Users with no signals fall back to a stored ``user_stats`` row, and
        to zeroed Novice stats when there is none.
        """
        address = user_address.lower()
        rows = await self._store.get_rollup_rows(address)
        if not rows:
            stored = await self._store.read_user_stats(address)
            return stats_from_stored(stored) if stored else UserStats(user_address=address)

        stats = compute_user_stats(address, rows)
        try:
            await self._save_counters(stats)
        except PersistenceError as exc:
            logger.warning("Could not store stats for %s: %s", address, exc)
        return stats

    async def get_leaderboard(
        self, timeframe: str | None = "all", limit: int | None = None,
    ) -> list[UserStats]:
        """Users sorted by win rate with the documented tie-break.

        A timeframe restricts the rollup to signals created inside the
        window. The all-time board also includes addresses that only have a
        stored ``user_stats`` row.
        """
        window = parse_timeframe(timeframe)
        since = int(self._clock()) - window if window is not None else None
        rows = await self._store.get_rollup_rows(since=since)
        board = {
            address: compute_user_stats(address, author_rows)
            for address, author_rows in _group_by_author(rows).items()
        }

        if window is None:
            for stored in await self._store.read_all_user_stats():
                address = stored["user_address"].lower()
                if address not in board:
                    board[address] = stats_from_stored(stored)

        ranked = sorted(board.values(), key=leaderboard_key)
        return ranked[:limit] if limit is not None else ranked

    async def get_user_ranking(self, user_address: str) -> Ranking | None:
        """Position in the all-time leaderboard, or None if the user is not ranked."""
        address = user_address.lower()
        board = await self.get_leaderboard("all")
        for position, stats in enumerate(board, start=1):
            if stats.user_address == address:
                return Ranking(
                    user_address=address,
                    rank=position,
                    total_users=len(board),
                    stats=stats,
                )
        return None

    async def refresh_all_user_stats(self) -> int:
        """Rescan every author and rewrite their stored counters. Returns the count."""
        rows = await self._store.get_rollup_rows()
        grouped = _group_by_author(rows)
        for address, author_rows in grouped.items():
            await self._save_counters(compute_user_stats(address, author_rows))
        logger.info("Refreshed stats for %d user(s)", len(grouped))
        return len(grouped)

    async def get_recent_wins(
        self, user_address: str, days: int = 7, limit: int = 10,
    ) -> list[Signal]:
        since = int(self._clock()) - days * 86400
        return await self._store.get_recent_wins(user_address, since, limit)

    async def get_prediction_history(
        self, user_address: str, limit: int = 50,
    ) -> list[Signal]:
        return await self._store.get_prediction_history(user_address, limit)

    async def _save_counters(self, stats: UserStats) -> None:
        await self._store.upsert_user_stats(
            stats.user_address,
            total_predictions=stats.total_predictions,
            win_count=stats.win_count,
            loss_count=stats.loss_count,
            total_earnings=stats.total_earnings,
        )

"""Entry points for the thin HTTP handlers.

Resolution calls never raise: every failure mode ends up in a tagged
ResolutionReport. Read calls (stats, ranking, leaderboard, history,
recent wins, refresh) have no failure envelope and raise PersistenceError
when storage is unreadable; handlers map it to a 5xx. Blank identifiers
are caller bugs and raise ValueError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from signal_reputation.config import get_settings
from signal_reputation.errors import NotFoundError, PersistenceError
from signal_reputation.markets.cache import ResolutionCache
from signal_reputation.markets.fetcher import (
    OutcomeFetcher,
    ProviderClients,
    build_outcome_fetcher,
)
from signal_reputation.reputation.aggregator import ReputationAggregator
from signal_reputation.reputation.models import Ranking, UserStats
from signal_reputation.signals.batch import BatchResolver, summarize
from signal_reputation.signals.models import ResolutionResult, Signal
from signal_reputation.signals.resolver import SignalResolver
from signal_reputation.signals.store import SignalStore

logger = logging.getLogger(__name__)


@dataclass
class ResolutionReport:
    """Response body for a resolve request."""

    success: bool
    resolved: int = 0
    pending: int = 0
    errored: int = 0
    results: list[ResolutionResult] = field(default_factory=list)
    error: str | None = None
    not_found: bool = False

    @classmethod
    def from_results(cls, results: list[ResolutionResult]) -> ResolutionReport:
        summary = summarize(results)
        return cls(
            success=True,
            resolved=summary.resolved,
            pending=summary.pending,
            errored=summary.errored,
            results=summary.results,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "resolved": self.resolved,
            "pending": self.pending,
            "errored": self.errored,
            "results": [r.to_dict() for r in self.results],
        }
        if self.error is not None:
            data["error"] = self.error
        if self.not_found:
            data["not_found"] = True
        return data


def _require(value: str, name: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{name} is required")
    return value.strip()


class ReputationAPI:
    """Wires store, fetcher, resolver, batch coordinator and aggregator."""

    def __init__(
        self,
        store: SignalStore | None = None,
        fetcher: OutcomeFetcher | None = None,
        cache: ResolutionCache | None = None,
    ) -> None:
        settings = get_settings()
        self._clients: ProviderClients | None = None
        if fetcher is None:
            self._clients = ProviderClients()
            fetcher = build_outcome_fetcher(self._clients, cache)
        self.store = store or SignalStore()
        self.fetcher = fetcher
        self.resolver = SignalResolver(fetcher, self.store)
        self.batch = BatchResolver(
            self.resolver, self.store, max_concurrency=settings.max_concurrency,
        )
        self.reputation = ReputationAggregator(self.store)

    async def resolve_one(self, signal_id: str) -> ResolutionReport:
        signal_id = _require(signal_id, "signal_id")
        try:
            result = await self.batch.resolve_signal_by_id(signal_id)
        except NotFoundError as exc:
            return ResolutionReport(success=False, error=str(exc), not_found=True)
        except PersistenceError as exc:
            logger.error("Could not load signal %s: %s", signal_id, exc)
            return ResolutionReport(success=False, error=str(exc))
        return ResolutionReport.from_results([result])

    async def resolve_for_event(self, event_id: str) -> ResolutionReport:
        event_id = _require(event_id, "event_id")
        try:
            results = await self.batch.resolve_event_signals(event_id)
        except PersistenceError as exc:
            logger.error("Could not load signals for event %s: %s", event_id, exc)
            return ResolutionReport(success=False, error=str(exc))
        return ResolutionReport.from_results(results)

    async def stats(self, address: str) -> UserStats:
        """Recomputed stats for one address. Raises PersistenceError if storage fails."""
        return await self.reputation.get_user_stats(_require(address, "address"))

    async def ranking(self, address: str) -> Ranking | None:
        return await self.reputation.get_user_ranking(_require(address, "address"))

    async def leaderboard(
        self, timeframe: str | None = "all", limit: int | None = None,
    ) -> list[UserStats]:
        return await self.reputation.get_leaderboard(timeframe, limit)

    async def history(self, address: str, limit: int = 50) -> list[Signal]:
        return await self.reputation.get_prediction_history(_require(address, "address"), limit)

    async def recent_wins(self, address: str, days: int = 7) -> list[Signal]:
        return await self.reputation.get_recent_wins(_require(address, "address"), days)

    async def refresh_stats(self) -> int:
        return await self.reputation.refresh_all_user_stats()

    async def close(self) -> None:
        if self._clients is not None:
            await self._clients.close()
        await self.store.close()

    async def __aenter__(self) -> ReputationAPI:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

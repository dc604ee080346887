"""Batch resolution: all pending signals for an event, or an explicit list."""

from __future__ import annotations

import asyncio
import logging

from signal_reputation.errors import NotFoundError, PersistenceError
from signal_reputation.signals.models import (
    BatchSummary,
    ResolutionResult,
    ResolutionStatus,
    Signal,
)
from signal_reputation.signals.resolver import SignalResolver
from signal_reputation.signals.store import SignalStore

logger = logging.getLogger(__name__)


def summarize(results: list[ResolutionResult]) -> BatchSummary:
    """Count results by status, keeping the per-signal list in order."""
    summary = BatchSummary(results=list(results))
    for result in results:
        if result.status is ResolutionStatus.RESOLVED:
            summary.resolved += 1
        elif result.status is ResolutionStatus.PENDING:
            summary.pending += 1
        else:
            summary.errored += 1
    return summary


class BatchResolver:
    """Resolve many signals without letting one failure abort the rest.

    With ``max_concurrency`` of 1 signals are resolved strictly in order.
    Higher values bound the number of in-flight resolutions; results keep
    the input order either way, and each signal id is resolved at most once
    per call.
    """

    def __init__(
        self,
        resolver: SignalResolver,
        store: SignalStore,
        max_concurrency: int = 1,
    ) -> None:
        self._resolver = resolver
        self._store = store
        self._max_concurrency = max(1, max_concurrency)

    async def resolve_event_signals(self, event_id: str) -> list[ResolutionResult]:
        """Resolve every pending signal for one market/event."""
        signals = await self._store.find_pending_signals_by_event(event_id)
        if not signals:
            logger.debug("No pending signals for event %s", event_id)
            return []
        logger.info("Resolving %d pending signal(s) for event %s", len(signals), event_id)
        return await self.resolve_batch(signals)

    async def resolve_signal_by_id(self, signal_id: str) -> ResolutionResult:
        """Resolve one signal. Raises NotFoundError if the id is unknown."""
        signal = await self._store.find_signal_by_id(signal_id)
        if signal is None:
            raise NotFoundError(signal_id)
        return await self._resolver.resolve_signal(signal)

    async def resolve_signal_ids(self, signal_ids: list[str]) -> list[ResolutionResult]:
        """Resolve a list of ids; unknown or unreadable ids become ERROR entries."""
        loaded: list[Signal | ResolutionResult] = []
        for signal_id in signal_ids:
            try:
                signal = await self._store.find_signal_by_id(signal_id)
            except PersistenceError as exc:
                logger.error("Could not load signal %s: %s", signal_id, exc)
                loaded.append(ResolutionResult(ResolutionStatus.ERROR, signal_id, error=str(exc)))
                continue
            if signal is None:
                loaded.append(ResolutionResult(
                    ResolutionStatus.ERROR, signal_id,
                    error=str(NotFoundError(signal_id)),
                ))
            else:
                loaded.append(signal)

        signals = [item for item in loaded if isinstance(item, Signal)]
        resolved = iter(await self.resolve_batch(signals))
        return [
            item if isinstance(item, ResolutionResult) else next(resolved)
            for item in loaded
        ]

    async def resolve_batch(self, signals: list[Signal]) -> list[ResolutionResult]:
        """Resolve signals in input order, one result per input entry."""
        unique: dict[str, Signal] = {}
        for signal in signals:
            unique.setdefault(signal.id, signal)

        by_id: dict[str, ResolutionResult] = {}
        if self._max_concurrency == 1:
            for signal_id, signal in unique.items():
                by_id[signal_id] = await self._resolver.resolve_signal(signal)
        else:
            sem = asyncio.Semaphore(self._max_concurrency)

            async def _throttled(signal: Signal) -> ResolutionResult:
                async with sem:
                    return await self._resolver.resolve_signal(signal)

            ids = list(unique)
            results = await asyncio.gather(*(_throttled(unique[i]) for i in ids))
            by_id = dict(zip(ids, results))

        return [by_id[signal.id] for signal in signals]

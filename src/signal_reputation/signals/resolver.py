"""Resolve individual signals against their market's settled outcome."""

from __future__ import annotations

import logging
import re

from signal_reputation.common.types import Clock, now_epoch
from signal_reputation.errors import ResolutionAmbiguousError
from signal_reputation.markets.fetcher import OutcomeFetcher
from signal_reputation.markets.models import MarketResolution, Platform
from signal_reputation.signals.models import (
    ResolutionResult,
    ResolutionStatus,
    Side,
    Signal,
    SignalOutcome,
)
from signal_reputation.signals.store import SignalStore

logger = logging.getLogger(__name__)

# Explicit side marker the publisher writes into the digest, e.g. "Side: YES."
# or a line reading "Prediction - NO". It must open a line or sentence and
# YES/NO must be followed by punctuation or the end of the line.
_SIDE_MARKER = re.compile(
    r"(?:^|[.;!?]\s+)\s*(?:side|prediction|pick|verdict)\s*[:=\-]\s*(YES|NO)(?=\s*(?:[.;,!]|$))",
    re.I | re.M,
)


def classify_platform(signal: Signal) -> Platform:
    """Pick the provider for a signal.

    The explicit ``platform`` tag wins. Rows without one fall back to the
    markers older publishers left in ``event_id``, ``venue`` or the title.
    """
    if signal.platform is not None:
        return signal.platform
    event_id = (signal.event_id or "").lower()
    if event_id.startswith("kalshi"):
        return Platform.KALSHI
    for text in (signal.venue, signal.market_title):
        if text and "kalshi" in text.lower():
            return Platform.KALSHI
    return Platform.POLYMARKET


def infer_side(signal: Signal) -> Side | None:
    """Predicted side: the stored column, else an explicit marker in the digest.

    Free-text mentions of yes/no never count. Digests with no marker, or
    with markers that disagree, yield None.
    """
    if signal.side is not None:
        return signal.side
    found = {Side(m.upper()) for m in _SIDE_MARKER.findall(signal.ai_digest or "")}
    if len(found) != 1:
        return None
    return found.pop()


def normalize_market_outcome(resolution: MarketResolution) -> Side:
    """Reduce a provider outcome to YES/NO or raise ResolutionAmbiguousError."""
    side = Side.parse(resolution.outcome)
    if side is None:
        raise ResolutionAmbiguousError(
            f"{resolution.platform.value} market {resolution.market_id} resolved "
            f"with unrecognised outcome {resolution.outcome!r}"
        )
    return side


def determine_verdict(signal: Signal, resolution: MarketResolution) -> SignalOutcome:
    """Compare the signal's predicted side against the settled market outcome.

    Returns CORRECT/INCORRECT when the side is known. Signals with no
    recoverable side get the raw market outcome (YES/NO), which is terminal
    but unscored.
    """
    market_side = normalize_market_outcome(resolution)
    predicted = infer_side(signal)
    if predicted is None:
        logger.warning(
            "Signal %s has no predicted side; recording raw market outcome %s",
            signal.id, market_side.value,
        )
        return SignalOutcome(market_side.value)
    if predicted is market_side:
        return SignalOutcome.CORRECT
    return SignalOutcome.INCORRECT


class SignalResolver:
    """Resolve one signal: fetch its market, judge it, persist the verdict once."""

    def __init__(
        self,
        fetcher: OutcomeFetcher,
        store: SignalStore,
        clock: Clock = now_epoch,
    ) -> None:
        self._fetcher = fetcher
        self._store = store
        self._clock = clock

    async def resolve_signal(self, signal: Signal) -> ResolutionResult:
        """Resolve a signal, never raising.

        Already-terminal signals are returned as RESOLVED without a fetch or
        a write. Unresolved or unreachable markets leave the signal PENDING.
        """
        try:
            if signal.is_resolved:
                return _resolved_from_stored(signal)

            platform = classify_platform(signal)
            resolution = await self._fetcher.get_resolution(signal.event_id, platform)
            if resolution is None or not resolution.resolved:
                return ResolutionResult(ResolutionStatus.PENDING, signal.id)

            try:
                verdict = determine_verdict(signal, resolution)
            except ResolutionAmbiguousError as exc:
                logger.warning("Leaving signal %s pending: %s", signal.id, exc)
                return ResolutionResult(ResolutionStatus.PENDING, signal.id)

            resolved_at = int(self._clock())
            written = await self._store.update_signal_outcome(
                signal.id, verdict.value, resolved_at,
            )
            if not written:
                # Another resolver got there first; report what is stored.
                stored = await self._store.find_signal_by_id(signal.id)
                if stored is not None and stored.is_resolved:
                    logger.info("Signal %s was already resolved as %s", signal.id, stored.outcome)
                    return _resolved_from_stored(stored, resolution.resolved_at)
                return ResolutionResult(
                    ResolutionStatus.ERROR, signal.id,
                    error=f"Signal {signal.id} could not be updated",
                )

            logger.info(
                "Resolved signal %s (%s %s) as %s",
                signal.id, platform.value, signal.event_id, verdict.value,
            )
            return ResolutionResult(
                ResolutionStatus.RESOLVED,
                signal.id,
                outcome=verdict.value,
                resolved_at=resolved_at,
                market_resolved_at=resolution.resolved_at,
            )
        except Exception as exc:
            logger.exception("Failed to resolve signal %s", signal.id)
            return ResolutionResult(ResolutionStatus.ERROR, signal.id, error=str(exc))


def _resolved_from_stored(
    signal: Signal, market_resolved_at: int | None = None,
) -> ResolutionResult:
    return ResolutionResult(
        ResolutionStatus.RESOLVED,
        signal.id,
        outcome=signal.outcome,
        resolved_at=signal.resolved_at,
        market_resolved_at=market_resolved_at,
    )

"""Exception types raised inside the resolution and reputation core."""

from __future__ import annotations


class SignalReputationError(Exception):
    """Base class for all errors raised by this package."""


class NotFoundError(SignalReputationError):
    """A requested signal id does not exist."""

    def __init__(self, signal_id: str) -> None:
        super().__init__(f"Signal not found: {signal_id}")
        self.signal_id = signal_id


class UpstreamFetchError(SignalReputationError):
    """A market provider could not be reached or returned a malformed payload."""


class ResolutionAmbiguousError(SignalReputationError):
    """A provider reports a market resolved but its outcome is not YES/NO."""


class PersistenceError(SignalReputationError):
    """A storage read or write failed."""


class InvalidTimeframeError(SignalReputationError, ValueError):
    """A leaderboard timeframe string could not be parsed."""

"""Shared type aliases and epoch helpers."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable, TypeAlias

# JSON-like dict
JsonDict: TypeAlias = dict[str, object]

# Returns the current time in seconds (monotonic or epoch)
Clock: TypeAlias = Callable[[], float]


def now_epoch() -> int:
    """Current UTC time as whole epoch seconds."""
    return int(time.time())


def to_epoch(value: object) -> int | None:
    """Convert an ISO-8601 string or a numeric timestamp to epoch seconds.

    Numbers above 1e12 are treated as milliseconds. Returns None for
    empty or unparseable values.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e12 else value
        return int(seconds)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp())
    return None

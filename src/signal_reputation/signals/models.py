"""Signal data models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Mapping

from signal_reputation.markets.models import Platform


class Side(Enum):
    """Market outcome a signal backs."""

    YES = "YES"
    NO = "NO"

    @classmethod
    def parse(cls, value: object) -> Side | None:
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


class SignalOutcome(Enum):
    """Lifecycle value stored in ``signals.outcome``.

    YES/NO are raw market results persisted for signals without a known
    side; they are terminal but carry no win/loss verdict.
    """

    PENDING = "PENDING"
    YES = "YES"
    NO = "NO"
    CORRECT = "CORRECT"
    INCORRECT = "INCORRECT"


# Values written by older versions of the publisher
LEGACY_WIN = "WIN"
LEGACY_LOSS = "LOSS"

WIN_VALUES = frozenset({SignalOutcome.CORRECT.value, LEGACY_WIN})
LOSS_VALUES = frozenset({SignalOutcome.INCORRECT.value, LEGACY_LOSS})


def is_terminal(outcome: str | None) -> bool:
    """True for any stored outcome other than NULL/PENDING."""
    return bool(outcome) and outcome != SignalOutcome.PENDING.value


class Confidence(Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class OddsEfficiency(Enum):
    EFFICIENT = "EFFICIENT"
    INEFFICIENT = "INEFFICIENT"


def _canonical(enum_cls: type[Enum], value: str | None) -> str | None:
    """Upper-case known labels; unknown labels are kept as stored."""
    if value is None:
        return None
    try:
        return enum_cls(value.strip().upper()).value
    except ValueError:
        return value


class ResolutionStatus(Enum):
    RESOLVED = "RESOLVED"
    PENDING = "PENDING"
    ERROR = "ERROR"


@dataclass
class Signal:
    """A persisted, attributable prediction about a market's outcome.

    Attributes:
        id: Unique signal id
        event_id: Upstream market identifier
        market_title: Market question/title at publish time
        venue: Free-form venue label
        event_time: Event start time (epoch seconds)
        market_snapshot_hash: Fingerprint of odds at publish time
        weather_json: Weather snapshot used for the prediction
        ai_digest: Free-text rationale
        confidence: LOW/MEDIUM/HIGH
        odds_efficiency: EFFICIENT/INEFFICIENT
        side: Predicted side, when captured at creation
        platform: Explicit provider tag, when captured at creation
        author_address: Wallet address of the author (lower-cased)
        tx_hash: On-chain publication hash, once published
        total_tips: Accumulated tips, string-encoded integer
        timestamp: Created-at (epoch seconds)
        outcome: Lifecycle value, None/PENDING until resolved
        resolved_at: Resolution write time (epoch seconds)
    """

    id: str
    event_id: str
    market_title: str = ""
    venue: str | None = None
    event_time: int | None = None
    market_snapshot_hash: str = ""
    weather_json: str | None = None
    ai_digest: str = ""
    confidence: str | None = None
    odds_efficiency: str | None = None
    side: Side | None = None
    platform: Platform | None = None
    author_address: str | None = None
    tx_hash: str | None = None
    total_tips: str = "0"
    timestamp: int = 0
    outcome: str | None = None
    resolved_at: int | None = None

    def __post_init__(self) -> None:
        if self.author_address:
            self.author_address = self.author_address.lower()

    @property
    def is_resolved(self) -> bool:
        return is_terminal(self.outcome)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Signal:
        """Build a Signal from a storage row (sqlite Row, asyncpg Record, dict)."""
        return cls(
            id=str(row["id"]),
            event_id=row["event_id"],
            market_title=row["market_title"] or "",
            venue=row["venue"],
            event_time=row["event_time"],
            market_snapshot_hash=row["market_snapshot_hash"] or "",
            weather_json=row["weather_json"],
            ai_digest=row["ai_digest"] or "",
            confidence=_canonical(Confidence, row["confidence"]),
            odds_efficiency=_canonical(OddsEfficiency, row["odds_efficiency"]),
            side=Side.parse(row["side"]),
            platform=Platform.parse(row["platform"]),
            author_address=row["author_address"],
            tx_hash=row["tx_hash"],
            total_tips=str(row["total_tips"] if row["total_tips"] is not None else "0"),
            timestamp=row["timestamp"],
            outcome=row["outcome"],
            resolved_at=row["resolved_at"],
        )


@dataclass
class ResolutionResult:
    """Outcome of one resolution attempt for one signal."""

    status: ResolutionStatus
    signal_id: str
    outcome: str | None = None
    resolved_at: int | None = None
    market_resolved_at: int | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return {k: v for k, v in data.items() if v is not None}


@dataclass
class BatchSummary:
    """Counts by status across a batch, plus the per-signal results in order."""

    resolved: int = 0
    pending: int = 0
    errored: int = 0
    results: list[ResolutionResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

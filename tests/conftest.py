"""Shared test fixtures."""

from __future__ import annotations

import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from signal_reputation.markets.cache import ResolutionCache
from signal_reputation.markets.fetcher import OutcomeFetcher
from signal_reputation.markets.models import Platform
from signal_reputation.markets.providers import KalshiProvider, PolymarketProvider
from signal_reputation.signals.models import Side, Signal
from signal_reputation.signals.store import SignalStore

NOW = 1_735_000_000


class FakeClock:
    """Manually advanced clock for TTL and timeframe tests."""

    def __init__(self, start: float = NOW) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_signal(
    signal_id: str = "s1",
    event_id: str = "mkt-42",
    author: str = "0xabc",
    side: Side | None = Side.YES,
    platform: Platform | None = None,
    outcome: str | None = None,
    resolved_at: int | None = None,
    timestamp: int = NOW - 3600,
    confidence: str = "HIGH",
    total_tips: str = "0",
    market_title: str = "Will NYC exceed 90F on July 4?",
    ai_digest: str = "Heat dome over the northeast.",
) -> Signal:
    return Signal(
        id=signal_id,
        event_id=event_id,
        market_title=market_title,
        venue="Polymarket",
        event_time=NOW + 86400,
        market_snapshot_hash="0xsnap",
        weather_json='{"temp_f": 91}',
        ai_digest=ai_digest,
        confidence=confidence,
        odds_efficiency="INEFFICIENT",
        side=side,
        platform=platform,
        author_address=author,
        total_tips=total_tips,
        timestamp=timestamp,
        outcome=outcome,
        resolved_at=resolved_at,
    )


def json_response(payload: object, status_code: int = 200) -> MagicMock:
    """A stand-in for the httpx.Response returned by HttpClient.get."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload
    return resp


def http_status_error(status_code: int, url: str = "https://example.test/markets/x") -> httpx.HTTPStatusError:
    request = httpx.Request("GET", url)
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError(f"HTTP {status_code}", request=request, response=response)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tmp_db():
    """Create a temporary database file for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test_signals.db"


@pytest.fixture
def store(tmp_db):
    """A SQLite-backed store on a temporary database."""
    with patch("signal_reputation.signals.store.get_settings") as mock_settings:
        settings = mock_settings.return_value
        settings.db_path = tmp_db
        settings.database_url = ""
        yield SignalStore()


@pytest.fixture
def polymarket_client():
    client = MagicMock()
    client.get = AsyncMock()
    return client


@pytest.fixture
def kalshi_client():
    client = MagicMock()
    client.get = AsyncMock()
    return client


@pytest.fixture
def fetcher(polymarket_client, kalshi_client, clock):
    """Outcome fetcher over mocked HTTP clients and a fake-clock cache."""
    return OutcomeFetcher(
        {
            Platform.POLYMARKET: PolymarketProvider(polymarket_client),
            Platform.KALSHI: KalshiProvider(kalshi_client),
        },
        ResolutionCache(ttl_seconds=900, clock=clock),
    )


@pytest.fixture
def polymarket_resolved_yes():
    """Gamma market that closed with resolutionSource=1."""
    return {
        "id": "mkt-42",
        "question": "Will NYC exceed 90F on July 4?",
        "closed": True,
        "closedTime": "2025-07-05T00:00:00Z",
        "resolutionSource": 1,
        "acceptingOrders": False,
    }


@pytest.fixture
def polymarket_open():
    return {
        "id": "mkt-42",
        "closed": False,
        "closedTime": None,
        "resolutionSource": "",
        "acceptingOrders": True,
    }


@pytest.fixture
def kalshi_resolved_yes():
    return {"ticker": "mkt-42", "result": "YES", "resolvedTime": "2024-12-24T00:00:00Z"}

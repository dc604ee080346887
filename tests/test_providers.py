"""Tests for Polymarket and Kalshi resolution mapping."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from conftest import http_status_error, json_response

from signal_reputation.common.types import to_epoch
from signal_reputation.errors import UpstreamFetchError
from signal_reputation.markets.models import Platform
from signal_reputation.markets.providers import (
    KalshiProvider,
    PolymarketProvider,
    parse_polymarket_outcome,
)


def _provider(cls):
    client = MagicMock()
    client.get = AsyncMock()
    return cls(client), client


class TestParsePolymarketOutcome:
    def test_one_is_yes(self):
        assert parse_polymarket_outcome({"resolutionSource": 1}) == "YES"

    def test_zero_is_no(self):
        assert parse_polymarket_outcome({"resolutionSource": 0}) == "NO"

    def test_string_digits(self):
        assert parse_polymarket_outcome({"resolutionSource": "1"}) == "YES"
        assert parse_polymarket_outcome({"resolutionSource": "0"}) == "NO"

    def test_other_values_pass_through(self):
        raw = {"resolutionSource": "https://www.wunderground.com/history"}
        assert parse_polymarket_outcome(raw) == "https://www.wunderground.com/history"

    def test_missing(self):
        assert parse_polymarket_outcome({}) is None
        assert parse_polymarket_outcome({"resolutionSource": ""}) is None


class TestPolymarketResolution:
    def test_resolved_yes(self, polymarket_resolved_yes):
        provider, _ = _provider(PolymarketProvider)
        res = provider.to_resolution("mkt-42", polymarket_resolved_yes)

        assert res.platform is Platform.POLYMARKET
        assert res.resolved is True
        assert res.outcome == "YES"
        assert res.resolved_at == to_epoch("2025-07-05T00:00:00Z")

    def test_resolved_no_counts_zero_as_present(self):
        provider, _ = _provider(PolymarketProvider)
        raw = {"closedTime": "2025-07-05T00:00:00Z", "resolutionSource": 0, "acceptingOrders": False}
        res = provider.to_resolution("m", raw)

        assert res.resolved is True
        assert res.outcome == "NO"

    def test_open_market(self, polymarket_open):
        provider, _ = _provider(PolymarketProvider)
        res = provider.to_resolution("mkt-42", polymarket_open)

        assert res.resolved is False
        assert res.outcome is None
        assert res.resolved_at is None

    def test_accepting_orders_hides_outcome(self):
        provider, _ = _provider(PolymarketProvider)
        raw = {"closedTime": "2025-07-05T00:00:00Z", "resolutionSource": 1, "acceptingOrders": True}
        res = provider.to_resolution("m", raw)

        assert res.resolved is True
        assert res.outcome is None


class TestKalshiResolution:
    def test_result_yes(self, kalshi_resolved_yes):
        provider, _ = _provider(KalshiProvider)
        res = provider.to_resolution("mkt-42", kalshi_resolved_yes)

        assert res.platform is Platform.KALSHI
        assert res.resolved is True
        assert res.outcome == "YES"
        assert res.resolved_at == to_epoch("2024-12-24T00:00:00Z")

    def test_result_null(self):
        provider, _ = _provider(KalshiProvider)
        res = provider.to_resolution("m", {"result": None, "resolvedTime": None})

        assert res.resolved is False
        assert res.outcome is None

    def test_empty_result_is_unresolved(self):
        provider, _ = _provider(KalshiProvider)
        res = provider.to_resolution("m", {"result": "", "close_time": "2025-01-01T00:00:00Z"})

        assert res.resolved is False
        assert res.resolved_at is None

    def test_lowercase_result_normalized(self):
        provider, _ = _provider(KalshiProvider)
        res = provider.to_resolution("m", {"result": "no", "settlement_ts": "2025-01-02T00:00:00Z"})

        assert res.outcome == "NO"
        assert res.resolved_at == to_epoch("2025-01-02T00:00:00Z")

    @pytest.mark.asyncio
    async def test_fetch_unwraps_market(self):
        provider, client = _provider(KalshiProvider)
        client.get.return_value = json_response({"market": {"ticker": "T1", "result": "yes"}})

        raw = await provider.fetch_raw("T1")

        assert raw == {"ticker": "T1", "result": "yes"}
        client.get.assert_awaited_once_with("/markets/T1")


class TestFetchErrors:
    @pytest.mark.asyncio
    async def test_http_status_error(self):
        provider, client = _provider(PolymarketProvider)
        client.get.side_effect = http_status_error(500)

        with pytest.raises(UpstreamFetchError, match="HTTP 500"):
            await provider.fetch_raw("m1")

    @pytest.mark.asyncio
    async def test_timeout(self):
        provider, client = _provider(PolymarketProvider)
        client.get.side_effect = httpx.ReadTimeout("timed out")

        with pytest.raises(UpstreamFetchError):
            await provider.fetch_raw("m1")

    @pytest.mark.asyncio
    async def test_non_object_payload(self):
        provider, client = _provider(PolymarketProvider)
        client.get.return_value = json_response([{"id": "m1"}])

        with pytest.raises(UpstreamFetchError, match="JSON object"):
            await provider.fetch_raw("m1")

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        provider, client = _provider(PolymarketProvider)
        resp = MagicMock()
        resp.json.side_effect = ValueError("Expecting value")
        client.get.return_value = resp

        with pytest.raises(UpstreamFetchError, match="Invalid JSON"):
            await provider.fetch_raw("m1")

    @pytest.mark.asyncio
    async def test_market_id_is_path_escaped(self):
        provider, client = _provider(PolymarketProvider)
        client.get.return_value = json_response({})

        await provider.fetch_raw("a/b")

        client.get.assert_awaited_once_with("/markets/a%2Fb")


class TestToEpoch:
    def test_iso_with_z(self):
        assert to_epoch("1970-01-01T00:01:00Z") == 60

    def test_milliseconds(self):
        assert to_epoch(1_735_000_000_000) == 1_735_000_000

    def test_seconds(self):
        assert to_epoch(1_735_000_000) == 1_735_000_000

    def test_garbage(self):
        assert to_epoch("not a date") is None
        assert to_epoch("") is None
        assert to_epoch(None) is None

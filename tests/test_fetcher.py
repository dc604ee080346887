"""Tests for the cached outcome fetcher."""

from __future__ import annotations

import httpx
import pytest
from conftest import http_status_error, json_response

from signal_reputation.markets.cache import ResolutionCache
from signal_reputation.markets.fetcher import OutcomeFetcher
from signal_reputation.markets.models import Platform


@pytest.mark.asyncio
async def test_second_call_within_ttl_hits_cache(fetcher, polymarket_client, polymarket_resolved_yes):
    polymarket_client.get.return_value = json_response(polymarket_resolved_yes)

    first = await fetcher.get_resolution("mkt-42", Platform.POLYMARKET)
    second = await fetcher.get_resolution("mkt-42", Platform.POLYMARKET)

    assert first is second
    assert first.outcome == "YES"
    assert polymarket_client.get.await_count == 1


@pytest.mark.asyncio
async def test_call_after_ttl_refetches(fetcher, polymarket_client, polymarket_resolved_yes, clock):
    polymarket_client.get.return_value = json_response(polymarket_resolved_yes)

    await fetcher.get_resolution("mkt-42", Platform.POLYMARKET)
    clock.advance(15 * 60)
    await fetcher.get_resolution("mkt-42", Platform.POLYMARKET)

    assert polymarket_client.get.await_count == 2


@pytest.mark.asyncio
async def test_platform_routes_to_provider(fetcher, polymarket_client, kalshi_client, kalshi_resolved_yes):
    kalshi_client.get.return_value = json_response(kalshi_resolved_yes)

    res = await fetcher.get_resolution("mkt-42", Platform.KALSHI)

    assert res.platform is Platform.KALSHI
    assert res.resolved is True
    polymarket_client.get.assert_not_called()


@pytest.mark.asyncio
async def test_server_error_returns_none(fetcher, polymarket_client):
    polymarket_client.get.side_effect = http_status_error(500)

    assert await fetcher.get_resolution("mkt-42", Platform.POLYMARKET) is None


@pytest.mark.asyncio
async def test_timeout_returns_none(fetcher, kalshi_client):
    kalshi_client.get.side_effect = httpx.ConnectTimeout("slow")

    assert await fetcher.get_resolution("mkt-42", Platform.KALSHI) is None


@pytest.mark.asyncio
async def test_failures_are_not_cached(fetcher, polymarket_client, polymarket_resolved_yes):
    polymarket_client.get.side_effect = [
        http_status_error(503),
        json_response(polymarket_resolved_yes),
    ]

    assert await fetcher.get_resolution("mkt-42") is None
    res = await fetcher.get_resolution("mkt-42")

    assert res is not None and res.resolved
    assert len(fetcher.cache) == 1


@pytest.mark.asyncio
async def test_unresolved_markets_are_cached(fetcher, polymarket_client, polymarket_open):
    polymarket_client.get.return_value = json_response(polymarket_open)

    await fetcher.get_resolution("mkt-42")
    res = await fetcher.get_resolution("mkt-42")

    assert res.resolved is False
    assert polymarket_client.get.await_count == 1


@pytest.mark.asyncio
async def test_clear_cache_forces_refetch(fetcher, polymarket_client, polymarket_resolved_yes):
    polymarket_client.get.return_value = json_response(polymarket_resolved_yes)

    await fetcher.get_resolution("mkt-42")
    fetcher.clear_cache()
    await fetcher.get_resolution("mkt-42")

    assert polymarket_client.get.await_count == 2


@pytest.mark.asyncio
async def test_missing_provider_returns_none(clock):
    empty = OutcomeFetcher({}, ResolutionCache(clock=clock))

    assert await empty.get_resolution("m1", Platform.KALSHI) is None

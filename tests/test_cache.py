"""Tests for the resolution TTL cache."""

from __future__ import annotations

from conftest import FakeClock

from signal_reputation.markets.cache import ResolutionCache
from signal_reputation.markets.models import MarketResolution, Platform, cache_key


def _resolution(market_id="m1", platform=Platform.POLYMARKET):
    return MarketResolution(market_id=market_id, platform=platform, resolved=True, outcome="YES")


def test_hit_within_ttl():
    clock = FakeClock()
    cache = ResolutionCache(ttl_seconds=900, clock=clock)
    cache.set(_resolution())

    clock.advance(899)
    assert cache.get(Platform.POLYMARKET, "m1") is not None


def test_miss_after_ttl():
    clock = FakeClock()
    cache = ResolutionCache(ttl_seconds=900, clock=clock)
    cache.set(_resolution())

    clock.advance(900)
    assert cache.get(Platform.POLYMARKET, "m1") is None
    assert len(cache) == 0


def test_key_includes_platform():
    cache = ResolutionCache(clock=FakeClock())
    cache.set(_resolution("m1", Platform.KALSHI))

    assert cache.get(Platform.POLYMARKET, "m1") is None
    assert cache.get(Platform.KALSHI, "m1").platform is Platform.KALSHI


def test_last_writer_wins():
    cache = ResolutionCache(clock=FakeClock())
    cache.set(_resolution())
    newer = MarketResolution(market_id="m1", platform=Platform.POLYMARKET, resolved=False)
    cache.set(newer)

    assert cache.get(Platform.POLYMARKET, "m1") is newer


def test_purge_expired():
    clock = FakeClock()
    cache = ResolutionCache(ttl_seconds=60, clock=clock)
    cache.set(_resolution("old"))
    clock.advance(61)
    cache.set(_resolution("fresh"))

    assert cache.purge_expired() == 1
    assert len(cache) == 1


def test_clear():
    cache = ResolutionCache(clock=FakeClock())
    cache.set(_resolution("a"))
    cache.set(_resolution("b"))
    cache.clear()

    assert len(cache) == 0


def test_resolution_key_matches_lookup_key():
    resolution = MarketResolution(market_id="HIGHNY-25JUL04", platform=Platform.KALSHI, resolved=True)

    assert resolution.cache_key == cache_key(Platform.KALSHI, "HIGHNY-25JUL04") == "kalshi:HIGHNY-25JUL04"

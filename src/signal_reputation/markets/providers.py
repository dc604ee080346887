"""Polymarket Gamma and Kalshi market-detail adapters (read-only).

Each adapter fetches one market's raw payload and maps it onto the common
MarketResolution shape. The two platforms express settlement differently:

- Polymarket reports ``closedTime`` plus a ``resolutionSource`` field where
  1 means YES and 0 means NO.
- Kalshi reports a ``result`` field that is already YES/NO, or empty while
  the market is open.
"""

from __future__ import annotations

import json
import logging
from typing import Protocol
from urllib.parse import quote

import httpx

from signal_reputation.common.http import HttpClient
from signal_reputation.common.types import JsonDict, to_epoch
from signal_reputation.errors import UpstreamFetchError
from signal_reputation.markets.models import MarketResolution, Platform

logger = logging.getLogger(__name__)


class MarketProvider(Protocol):
    platform: Platform

    async def fetch_raw(self, market_id: str) -> JsonDict: ...

    def to_resolution(self, market_id: str, raw: JsonDict) -> MarketResolution: ...


async def _get_json(client: HttpClient, path: str) -> JsonDict:
    """GET a JSON object, raising UpstreamFetchError on any failure."""
    try:
        resp = await client.get(path)
        data = resp.json()
    except httpx.HTTPStatusError as exc:
        raise UpstreamFetchError(
            f"HTTP {exc.response.status_code} for {path}"
        ) from exc
    except httpx.HTTPError as exc:
        raise UpstreamFetchError(f"{type(exc).__name__} for {path}: {exc}") from exc
    except (json.JSONDecodeError, ValueError) as exc:
        raise UpstreamFetchError(f"Invalid JSON for {path}") from exc

    if not isinstance(data, dict):
        raise UpstreamFetchError(
            f"Expected a JSON object for {path}, got {type(data).__name__}"
        )
    return data


def _present(value: object) -> bool:
    return value is not None and value != ""


def parse_polymarket_outcome(raw: JsonDict) -> str | None:
    """Map ``resolutionSource`` to an outcome: 1 → YES, 0 → NO, else raw."""
    source = raw.get("resolutionSource")
    if not _present(source):
        return None
    if isinstance(source, bool):
        return str(source)
    if source in (1, "1"):
        return "YES"
    if source in (0, "0"):
        return "NO"
    return str(source)


class PolymarketProvider:
    """Gamma API ``GET /markets/{id}``."""

    platform = Platform.POLYMARKET

    def __init__(self, client: HttpClient) -> None:
        self._client = client

    async def fetch_raw(self, market_id: str) -> JsonDict:
        return await _get_json(self._client, f"/markets/{quote(market_id, safe='')}")

    def to_resolution(self, market_id: str, raw: JsonDict) -> MarketResolution:
        closed_time = raw.get("closedTime")
        resolved = _present(closed_time) and _present(raw.get("resolutionSource"))
        outcome = None if raw.get("acceptingOrders") else parse_polymarket_outcome(raw)
        return MarketResolution(
            market_id=market_id,
            platform=self.platform,
            resolved=resolved,
            outcome=outcome,
            resolved_at=to_epoch(closed_time),
            raw=raw,
        )


class KalshiProvider:
    """Kalshi ``GET /markets/{ticker}``."""

    platform = Platform.KALSHI

    def __init__(self, client: HttpClient) -> None:
        self._client = client

    async def fetch_raw(self, market_id: str) -> JsonDict:
        data = await _get_json(self._client, f"/markets/{quote(market_id, safe='')}")
        # Trade API v2 wraps the market object
        inner = data.get("market")
        if isinstance(inner, dict):
            return inner
        return data

    def to_resolution(self, market_id: str, raw: JsonDict) -> MarketResolution:
        result = raw.get("result")
        outcome = str(result).strip().upper() if _present(result) else None
        resolved_at = None
        for field_name in ("resolvedTime", "settlement_ts", "close_time"):
            resolved_at = to_epoch(raw.get(field_name))
            if resolved_at is not None:
                break
        return MarketResolution(
            market_id=market_id,
            platform=self.platform,
            resolved=outcome is not None,
            outcome=outcome,
            resolved_at=resolved_at if outcome is not None else None,
            raw=raw,
        )

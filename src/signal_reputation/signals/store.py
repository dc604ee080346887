"""Signal and user-stats storage with PostgreSQL and SQLite backends."""

from __future__ import annotations

import asyncio
import functools
import logging
import re
from typing import Any, Awaitable, Callable, TypeVar

import aiosqlite
import asyncpg

from signal_reputation.common.types import now_epoch
from signal_reputation.config import get_settings
from signal_reputation.errors import PersistenceError
from signal_reputation.signals.models import Signal, SignalOutcome

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CREATE_SIGNALS = """
CREATE TABLE IF NOT EXISTS signals (
    id TEXT PRIMARY KEY,
    event_id TEXT NOT NULL,
    market_title TEXT,
    venue TEXT,
    event_time BIGINT,
    market_snapshot_hash TEXT,
    weather_json TEXT,
    ai_digest TEXT,
    confidence TEXT,
    odds_efficiency TEXT,
    side TEXT,  -- YES/NO, NULL for legacy rows
    platform TEXT,  -- polymarket/kalshi, NULL for legacy rows
    author_address TEXT,
    tx_hash TEXT,
    total_tips TEXT DEFAULT '0',
    timestamp BIGINT NOT NULL,
    outcome TEXT DEFAULT 'PENDING',  -- NULL/PENDING until resolved
    resolved_at BIGINT
);
"""

_CREATE_USER_STATS = """
CREATE TABLE IF NOT EXISTS user_stats (
    user_address TEXT PRIMARY KEY,
    total_predictions INTEGER NOT NULL DEFAULT 0,
    win_count INTEGER NOT NULL DEFAULT 0,
    loss_count INTEGER NOT NULL DEFAULT 0,
    total_earnings BIGINT NOT NULL DEFAULT 0,
    updated_at BIGINT
);
"""

_CREATE_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_signals_event_id ON signals(event_id);",
    "CREATE INDEX IF NOT EXISTS idx_signals_author ON signals(author_address);",
)

_SIGNAL_COLUMNS = (
    "id", "event_id", "market_title", "venue", "event_time",
    "market_snapshot_hash", "weather_json", "ai_digest", "confidence",
    "odds_efficiency", "side", "platform", "author_address", "tx_hash",
    "total_tips", "timestamp", "outcome", "resolved_at",
)

_PENDING_CLAUSE = "(outcome IS NULL OR outcome = 'PENDING')"

# Columns the reputation rollup needs
_ROLLUP_COLUMNS = (
    "id, author_address, market_title, confidence, outcome, total_tips, "
    "timestamp, resolved_at"
)

_PLACEHOLDER = re.compile(r"\?")


def _to_pg(query: str) -> str:
    """Rewrite ``?`` placeholders as ``$1, $2, ...`` for asyncpg."""
    counter = iter(range(1, 1000))
    return _PLACEHOLDER.sub(lambda _: f"${next(counter)}", query)


def _wrap_errors(
    func: Callable[..., Awaitable[T]],
) -> Callable[..., Awaitable[T]]:
    """Re-raise driver and filesystem errors as PersistenceError."""

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        try:
            return await func(*args, **kwargs)
        except (aiosqlite.Error, asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            raise PersistenceError(f"{func.__name__} failed: {exc}") from exc

    return wrapper


class SignalStore:
    """Storage collaborator with PostgreSQL (via asyncpg) or SQLite (via aiosqlite) backend.

    Every statement touches at most one row or runs a single read; there are
    no multi-row transactions, so a failure on one signal never affects
    another signal's stored state.
    """

    def __init__(self) -> None:
        settings = get_settings()
        self._database_url = settings.database_url
        self._use_pg = bool(self._database_url)
        self._db_path = settings.db_path
        self._pool = None  # asyncpg pool, created lazily
        self._pool_lock = asyncio.Lock()
        self._initialized = False

    async def _get_pool(self):
        """Get or create the asyncpg connection pool."""
        if self._pool is None:
            async with self._pool_lock:
                if self._pool is None:
                    self._pool = await asyncpg.create_pool(
                        self._database_url, min_size=1, max_size=5,
                    )
        return self._pool

    async def close(self) -> None:
        """Close the connection pool, if open."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def _ensure_db(self) -> None:
        """Create database and tables if they don't exist."""
        if self._initialized:
            return
        if self._use_pg:
            pool = await self._get_pool()
            async with pool.acquire() as conn:
                await conn.execute(_CREATE_SIGNALS)
                await conn.execute(_CREATE_USER_STATS)
                for stmt in _CREATE_INDEXES:
                    await conn.execute(stmt)
        else:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_CREATE_SIGNALS)
                await db.execute(_CREATE_USER_STATS)
                for stmt in _CREATE_INDEXES:
                    await db.execute(stmt)
                await db.commit()
        self._initialized = True

    # -- backend dispatch --

    async def _execute(self, query: str, *params: object) -> int:
        """Run a write statement. Returns the number of affected rows."""
        await self._ensure_db()
        if self._use_pg:
            pool = await self._get_pool()
            async with pool.acquire() as conn:
                result = await conn.execute(_to_pg(query), *params)
                # asyncpg returns e.g. "UPDATE 1"
                return int(result.split()[-1])
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(query, params)
            await db.commit()
            return cursor.rowcount

    async def _fetchall(self, query: str, *params: object) -> list[dict[str, Any]]:
        await self._ensure_db()
        if self._use_pg:
            pool = await self._get_pool()
            async with pool.acquire() as conn:
                rows = await conn.fetch(_to_pg(query), *params)
                return [dict(row) for row in rows]
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            return [dict(row) for row in rows]

    async def _fetchone(self, query: str, *params: object) -> dict[str, Any] | None:
        rows = await self._fetchall(query, *params)
        return rows[0] if rows else None

    # -- signals --

    @_wrap_errors
    async def insert_signal(self, signal: Signal) -> None:
        """Insert a signal row. Used when seeding and by publishers."""
        placeholders = ", ".join("?" for _ in _SIGNAL_COLUMNS)
        await self._execute(
            f"INSERT INTO signals ({', '.join(_SIGNAL_COLUMNS)}) VALUES ({placeholders})",
            signal.id,
            signal.event_id,
            signal.market_title,
            signal.venue,
            signal.event_time,
            signal.market_snapshot_hash,
            signal.weather_json,
            signal.ai_digest,
            signal.confidence,
            signal.odds_efficiency,
            signal.side.value if signal.side else None,
            signal.platform.value if signal.platform else None,
            signal.author_address,
            signal.tx_hash,
            signal.total_tips,
            signal.timestamp,
            signal.outcome if signal.outcome is not None else SignalOutcome.PENDING.value,
            signal.resolved_at,
        )

    @_wrap_errors
    async def find_signal_by_id(self, signal_id: str) -> Signal | None:
        row = await self._fetchone("SELECT * FROM signals WHERE id = ?", signal_id)
        return Signal.from_row(row) if row else None

    @_wrap_errors
    async def find_pending_signals_by_event(self, event_id: str) -> list[Signal]:
        rows = await self._fetchall(
            f"""SELECT * FROM signals
                WHERE event_id = ? AND {_PENDING_CLAUSE}
                ORDER BY timestamp, id""",
            event_id,
        )
        return [Signal.from_row(row) for row in rows]

    @_wrap_errors
    async def update_signal_outcome(
        self, signal_id: str, outcome: str, resolved_at: int,
    ) -> bool:
        """Write a terminal outcome only if the signal is still pending.

        Returns True if this call performed the transition, False if the
        signal was already terminal (or does not exist).
        """
        updated = await self._execute(
            f"""UPDATE signals
                SET outcome = ?, resolved_at = ?
                WHERE id = ? AND {_PENDING_CLAUSE}""",
            outcome, resolved_at, signal_id,
        )
        return updated > 0

    @_wrap_errors
    async def get_rollup_rows(
        self, author_address: str | None = None, since: int | None = None,
    ) -> list[dict[str, Any]]:
        """Signal rows for the reputation rollup, newest resolution first.

        Args:
            author_address: Restrict to one author; None = all authors
            since: Only signals created at or after this epoch
        """
        clauses = ["author_address IS NOT NULL"]
        params: list[object] = []
        if author_address is not None:
            clauses.append("author_address = ?")
            params.append(author_address.lower())
        if since is not None:
            clauses.append("timestamp >= ?")
            params.append(since)
        return await self._fetchall(
            f"""SELECT {_ROLLUP_COLUMNS} FROM signals
                WHERE {' AND '.join(clauses)}
                ORDER BY COALESCE(resolved_at, timestamp) DESC, id DESC""",
            *params,
        )

    @_wrap_errors
    async def get_recent_wins(
        self, author_address: str, since: int, limit: int = 10,
    ) -> list[Signal]:
        rows = await self._fetchall(
            """SELECT * FROM signals
               WHERE author_address = ? AND outcome IN ('CORRECT', 'WIN')
               AND resolved_at > ?
               ORDER BY resolved_at DESC, id DESC
               LIMIT ?""",
            author_address.lower(), since, limit,
        )
        return [Signal.from_row(row) for row in rows]

    @_wrap_errors
    async def get_prediction_history(
        self, author_address: str, limit: int = 50,
    ) -> list[Signal]:
        rows = await self._fetchall(
            """SELECT * FROM signals
               WHERE author_address = ?
               ORDER BY timestamp DESC, id DESC
               LIMIT ?""",
            author_address.lower(), limit,
        )
        return [Signal.from_row(row) for row in rows]

    @_wrap_errors
    async def list_authors(self) -> list[str]:
        rows = await self._fetchall(
            """SELECT DISTINCT author_address FROM signals
               WHERE author_address IS NOT NULL ORDER BY author_address"""
        )
        return [row["author_address"] for row in rows]

    # -- user_stats --

    @_wrap_errors
    async def upsert_user_stats(
        self,
        user_address: str,
        total_predictions: int,
        win_count: int,
        loss_count: int,
        total_earnings: int = 0,
    ) -> None:
        """Insert or replace the stored counters for one address.

        On conflict the counters are replaced, not incremented.
        """
        await self._execute(
            """INSERT INTO user_stats
               (user_address, total_predictions, win_count, loss_count,
                total_earnings, updated_at)
               VALUES (?, ?, ?, ?, ?, ?)
               ON CONFLICT (user_address) DO UPDATE
               SET total_predictions = excluded.total_predictions,
                   win_count = excluded.win_count,
                   loss_count = excluded.loss_count,
                   total_earnings = excluded.total_earnings,
                   updated_at = excluded.updated_at""",
            user_address.lower(), total_predictions, win_count, loss_count,
            total_earnings, now_epoch(),
        )

    @_wrap_errors
    async def read_user_stats(self, user_address: str) -> dict[str, Any] | None:
        return await self._fetchone(
            "SELECT * FROM user_stats WHERE user_address = ?", user_address.lower(),
        )

    @_wrap_errors
    async def read_all_user_stats(self) -> list[dict[str, Any]]:
        return await self._fetchall("SELECT * FROM user_stats ORDER BY user_address")

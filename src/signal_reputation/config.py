"""Application configuration via pydantic-settings."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Polymarket Gamma API base URL
    polymarket_api_url: str = "https://gamma-api.polymarket.com"

    # Kalshi API base URL
    kalshi_api_url: str = "https://api.kalshi.com"

    # SQLite database path (used when database_url is empty)
    db_path: Path = Path.home() / ".signal-reputation" / "signals.db"

    # PostgreSQL DSN; takes precedence over db_path when set
    database_url: str = ""

    # HTTP request timeout seconds
    http_timeout: float = 10.0

    # Seconds a market resolution stays cached
    resolution_cache_ttl: float = 900.0

    # Max signals resolved concurrently within one batch (1 = sequential)
    max_concurrency: int = 1

    # Default leaderboard size for the CLI
    leaderboard_limit: int = 20

    log_level: str = "INFO"

    @field_validator("http_timeout", "resolution_cache_ttl")
    @classmethod
    def _positive_seconds(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"must be > 0, got {v}")
        return v

    @field_validator("max_concurrency", "leaderboard_limit")
    @classmethod
    def _positive_int(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"must be >= 1, got {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level {v!r}")
        return level


def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

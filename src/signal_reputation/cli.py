"""Typer CLI: signal-rep resolve, stats, ranking, leaderboard, history."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

app = typer.Typer(
    name="signal-rep",
    help="Resolve prediction signals and report analyst reputation",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    from signal_reputation.config import get_settings

    level = "DEBUG" if verbose else get_settings().log_level
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.command()
def resolve(
    signal_id: Optional[str] = typer.Option(None, "--signal-id", "-s", help="Resolve one signal"),
    event_id: Optional[str] = typer.Option(None, "--event-id", "-e", help="Resolve all pending signals for an event"),
    output: str = typer.Option("table", "--output", "-o", help="Output format: table, json"),
) -> None:
    """Resolve pending signals against their market outcome."""
    if not signal_id and not event_id:
        console.print("[red]Either --signal-id or --event-id is required[/red]")
        raise typer.Exit(code=2)

    async def _run() -> int:
        from signal_reputation.api import ReputationAPI
        from signal_reputation.signals.formatters import format_json, format_resolution_table

        async with ReputationAPI() as api:
            if signal_id:
                report = await api.resolve_one(signal_id)
            else:
                report = await api.resolve_for_event(event_id)

        if output == "json":
            console.print_json(format_json(report))
        else:
            format_resolution_table(report, console)
        if report.not_found:
            return 1
        return 0 if report.success else 1

    code = asyncio.run(_run())
    if code:
        raise typer.Exit(code=code)


@app.command()
def stats(
    address: str = typer.Argument(help="Author wallet address"),
    output: str = typer.Option("table", "--output", "-o", help="Output format: table, json"),
) -> None:
    """Show an analyst's stats, tier and rank."""

    async def _run() -> None:
        from signal_reputation.api import ReputationAPI
        from signal_reputation.signals.formatters import format_json, format_stats

        async with ReputationAPI() as api:
            user_stats = await api.stats(address)
            ranking = await api.ranking(address)

        if output == "json":
            payload = user_stats.to_dict()
            payload["ranking"] = (
                {"rank": ranking.rank, "total_users": ranking.total_users}
                if ranking else None
            )
            console.print_json(format_json(payload))
        else:
            format_stats(user_stats, ranking, console)

    asyncio.run(_run())


@app.command()
def ranking(address: str = typer.Argument(help="Author wallet address")) -> None:
    """Show an analyst's position in the all-time leaderboard."""

    async def _run() -> None:
        from signal_reputation.api import ReputationAPI

        async with ReputationAPI() as api:
            result = await api.ranking(address)

        if result is None:
            console.print(f"[yellow]{address} is not ranked (no signals).[/yellow]")
            raise typer.Exit(code=1)
        console.print(f"#{result.rank} of {result.total_users}")

    asyncio.run(_run())


@app.command()
def leaderboard(
    timeframe: str = typer.Option("all", "--timeframe", "-t", help="Window: 24h, 7d, 30d, all"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Max rows"),
    output: str = typer.Option("table", "--output", "-o", help="Output format: table, json"),
) -> None:
    """Rank analysts by win rate."""
    from signal_reputation.config import get_settings
    from signal_reputation.errors import InvalidTimeframeError

    if limit is None:
        limit = get_settings().leaderboard_limit

    async def _run() -> None:
        from signal_reputation.api import ReputationAPI
        from signal_reputation.signals.formatters import format_json, format_leaderboard_table

        async with ReputationAPI() as api:
            board = await api.leaderboard(timeframe, limit)

        if output == "json":
            console.print_json(format_json(board))
        else:
            format_leaderboard_table(board, timeframe, console)

    try:
        asyncio.run(_run())
    except InvalidTimeframeError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=2)


@app.command()
def history(
    address: str = typer.Argument(help="Author wallet address"),
    limit: int = typer.Option(50, "--limit", "-n", help="Max rows"),
) -> None:
    """List an analyst's most recent predictions."""

    async def _run() -> None:
        from signal_reputation.api import ReputationAPI
        from signal_reputation.signals.formatters import format_history_table

        async with ReputationAPI() as api:
            signals = await api.history(address, limit)
        format_history_table(signals, console)

    asyncio.run(_run())


@app.command(name="refresh-stats")
def refresh_stats() -> None:
    """Recompute stored user stats from all signals."""

    async def _run() -> None:
        from signal_reputation.api import ReputationAPI

        async with ReputationAPI() as api:
            count = await api.refresh_stats()
        console.print(f"Refreshed stats for {count} user(s)")

    asyncio.run(_run())


if __name__ == "__main__":
    app()

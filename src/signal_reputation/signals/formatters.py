"""Output formatters: Rich tables and JSON."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from rich.console import Console
from rich.table import Table

from signal_reputation.reputation.models import Ranking, UserStats
from signal_reputation.signals.models import ResolutionStatus, Signal

_STATUS_COLORS = {
    ResolutionStatus.RESOLVED: "green",
    ResolutionStatus.PENDING: "yellow",
    ResolutionStatus.ERROR: "red",
}


def _short_address(address: str) -> str:
    if len(address) <= 12:
        return address
    return f"{address[:6]}...{address[-4:]}"


def _fmt_epoch(ts: int | None) -> str:
    if ts is None:
        return "-"
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")


def format_json(payload: Any) -> str:
    """Serialize a report, stats object or list of them as indented JSON."""
    def _encode(obj: Any) -> Any:
        if hasattr(obj, "to_dict"):
            return obj.to_dict()
        raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")

    return json.dumps(payload, indent=2, default=_encode)


def format_resolution_table(report, console: Console | None = None) -> None:
    """Print a ResolutionReport as a Rich table plus a one-line summary."""
    if console is None:
        console = Console()

    if report.error:
        console.print(f"[red]{report.error}[/red]")
        return
    if not report.results:
        console.print("[yellow]No pending signals to resolve.[/yellow]")
        return

    table = Table(title="Signal Resolution", show_lines=False)
    table.add_column("Signal", width=16)
    table.add_column("Status", width=9)
    table.add_column("Outcome", width=10)
    table.add_column("Resolved at", width=17)
    table.add_column("Error", no_wrap=False)

    for r in report.results:
        color = _STATUS_COLORS[r.status]
        table.add_row(
            r.signal_id,
            f"[{color}]{r.status.value}[/{color}]",
            r.outcome or "-",
            _fmt_epoch(r.resolved_at),
            r.error or "",
        )

    console.print(table)
    console.print(
        f"\n[dim]Resolved {report.resolved}, pending {report.pending}, "
        f"errored {report.errored}[/dim]"
    )


def format_leaderboard_table(
    board: list[UserStats], timeframe: str = "all", console: Console | None = None,
) -> None:
    if console is None:
        console = Console()

    if not board:
        console.print("[yellow]No ranked analysts yet.[/yellow]")
        return

    table = Table(title=f"Leaderboard ({timeframe})", show_lines=False)
    table.add_column("#", justify="right", width=4)
    table.add_column("Address", width=14)
    table.add_column("Tier", width=16)
    table.add_column("Win rate", justify="right", width=8)
    table.add_column("W-L", justify="right", width=9)
    table.add_column("Signals", justify="right", width=7)
    table.add_column("Tips", justify="right", width=12)

    for position, s in enumerate(board, start=1):
        tier = s.tier
        table.add_row(
            str(position),
            _short_address(s.user_address),
            f"{tier.emoji} {tier.label}",
            f"{s.win_rate:.1%}",
            f"{s.win_count}-{s.loss_count}",
            str(s.total_predictions),
            f"{s.total_earnings:,}",
        )

    console.print(table)


def format_stats(
    stats: UserStats, ranking: Ranking | None = None, console: Console | None = None,
) -> None:
    if console is None:
        console = Console()

    tier = stats.tier
    console.print(f"[bold]{stats.user_address}[/bold]  {tier.emoji} {tier.label}")
    console.print(f"  Predictions:        {stats.total_predictions}")
    console.print(f"  Wins / losses:      {stats.win_count} / {stats.loss_count}")
    console.print(f"  Pending/unscored:   {stats.pending_count}")
    if stats.resolved_count:
        console.print(f"  Win rate:           {stats.win_rate:.1%}")
    else:
        console.print("  Win rate:           N/A (no scored outcomes)")
    console.print(f"  Current streak:     {stats.current_streak}")
    console.print(f"  Longest win streak: {stats.longest_win_streak}")
    console.print(f"  Calibration:        {stats.calibration_score:.0f}/100")
    console.print(f"  Tips received:      {stats.total_earnings:,}")
    if ranking is not None:
        console.print(f"  Rank:               #{ranking.rank} of {ranking.total_users}")


def format_history_table(signals: list[Signal], console: Console | None = None) -> None:
    if console is None:
        console = Console()

    if not signals:
        console.print("[yellow]No predictions found.[/yellow]")
        return

    table = Table(title="Prediction History", show_lines=False)
    table.add_column("Created", width=17)
    table.add_column("Confidence", width=10)
    table.add_column("Outcome", width=10)
    table.add_column("Market", no_wrap=False)

    for s in signals:
        table.add_row(
            _fmt_epoch(s.timestamp),
            s.confidence or "-",
            s.outcome or "PENDING",
            (s.market_title or s.event_id)[:80],
        )

    console.print(table)

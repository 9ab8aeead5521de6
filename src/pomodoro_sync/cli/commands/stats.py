"""Session recording and statistics commands."""

import asyncio
from typing import Optional

import click

from ...core.app import PomodoroSyncApp
from ...exceptions import PomodoroSyncError
from ..display import console, display_notice, display_stats


@click.command()
@click.option(
    "--duration",
    type=click.FloatRange(min=0, min_open=True),
    help="Session length in minutes (default: pomodoro setting)",
)
@click.pass_obj
def record(app: PomodoroSyncApp, duration: Optional[float]) -> None:
    """Record a completed pomodoro."""
    try:
        result = asyncio.run(app.stats.record_completion(duration))
    except PomodoroSyncError as e:
        raise click.ClickException(str(e))

    where = "account" if result.synced else "local log"
    console.print(
        f"[green]✓[/green] Recorded {result.entry.pomodoro_duration:g} minute "
        f"pomodoro ({where})"
    )
    display_notice(result.notice)


@click.command()
@click.pass_obj
def stats(app: PomodoroSyncApp) -> None:
    """Show completed pomodoros and total focus time."""
    display_stats(asyncio.run(app.stats.summary()))

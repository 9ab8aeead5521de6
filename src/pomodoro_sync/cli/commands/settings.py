"""Settings commands."""

import asyncio
from typing import Optional

import click

from ...core.app import PomodoroSyncApp
from ...exceptions import PomodoroSyncError
from ..display import display_settings_result


@click.group()
def settings() -> None:
    """Show or change timer settings."""


@settings.command("show")
@click.pass_obj
def show(app: PomodoroSyncApp) -> None:
    """Show current settings."""
    display_settings_result(asyncio.run(app.settings.load()))


@settings.command("set")
@click.option("--pomodoro", type=float, help="Pomodoro length in minutes")
@click.option("--short-break", type=float, help="Short break length in minutes")
@click.option("--long-break", type=float, help="Long break length in minutes")
@click.option(
    "--auto-start-break/--no-auto-start-break",
    default=None,
    help="Start breaks automatically",
)
@click.option(
    "--auto-start-pomodoro/--no-auto-start-pomodoro",
    default=None,
    help="Start pomodoros automatically",
)
@click.pass_obj
def set_settings(
    app: PomodoroSyncApp,
    pomodoro: Optional[float],
    short_break: Optional[float],
    long_break: Optional[float],
    auto_start_break: Optional[bool],
    auto_start_pomodoro: Optional[bool],
) -> None:
    """Change one or more settings."""
    changes = {
        "pomodoro_duration": pomodoro,
        "short_break_duration": short_break,
        "long_break_duration": long_break,
        "auto_start_break": auto_start_break,
        "auto_start_pomodoro": auto_start_pomodoro,
    }
    if all(value is None for value in changes.values()):
        raise click.UsageError("Nothing to change")

    try:
        result = asyncio.run(app.settings.save(**changes))
    except PomodoroSyncError as e:
        raise click.ClickException(str(e))
    display_settings_result(result)

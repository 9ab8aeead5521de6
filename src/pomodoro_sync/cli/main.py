"""Command-line interface for the pomodoro sync engine.

This is the main entry point that delegates to command modules.
"""

from pathlib import Path
from typing import Any, Optional

import click

from ..core.app import PomodoroSyncApp
from ..utils.logging_config import configure_third_party_loggers, setup_logging
from .commands import (
    backup,
    login,
    logout,
    merge,
    record,
    register,
    settings,
    stats,
    status,
    sync_command,
)


@click.group()
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Set logging level",
)
@click.option("--log-file", type=click.Path(), help="Log to file")
@click.option("--offline", is_flag=True, help="Do not contact the account server")
@click.pass_context
def cli(ctx: Any, log_level: str, log_file: Optional[str], offline: bool) -> None:
    """Pomodoro Sync.

    Keeps timer settings and completed sessions in sync between this
    machine and your account.
    """
    if ctx.obj is None:
        app = PomodoroSyncApp(online=not offline)
        ctx.call_on_close(app.close)
        ctx.obj = app

    config_log_file = ctx.obj.config.log_file
    setup_logging(
        log_level=log_level,
        log_file=Path(log_file) if log_file else config_log_file,
    )
    configure_third_party_loggers()


# Register command groups and commands
cli.add_command(login)
cli.add_command(register)
cli.add_command(logout)
cli.add_command(status)
cli.add_command(settings)
cli.add_command(record)
cli.add_command(stats)
cli.add_command(sync_command)
cli.add_command(merge)
cli.add_command(backup)


if __name__ == "__main__":
    cli()

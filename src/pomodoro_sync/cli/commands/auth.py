"""Account commands: login, register, logout and status."""

import asyncio
import logging
from typing import Any, Dict

import click

from ...core.app import PomodoroSyncApp
from ...core.sync import OutcomeStatus
from ...exceptions import RemoteError
from ..display import console, display_outcome, display_pending, display_status

logger = logging.getLogger(__name__)


def _report_login(app: PomodoroSyncApp) -> None:
    outcome = app.trigger.last_login_outcome
    if outcome is None:
        return
    display_outcome(outcome)
    if outcome.status == OutcomeStatus.PENDING_DECISION and outcome.pending:
        display_pending(outcome.pending)
        console.print("\nRun [bold]pomodoro-sync merge[/bold] to decide how to merge.")


async def _login(app: PomodoroSyncApp, email: str, password: str, new: bool) -> None:
    await app.start()
    if new:
        await app.auth.register(email, password)
    else:
        await app.auth.login(email, password)


@click.command()
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True, help="Account password")
@click.pass_obj
def login(app: PomodoroSyncApp, email: str, password: str) -> None:
    """Log in and reconcile local data with the account."""
    try:
        asyncio.run(_login(app, email, password, new=False))
    except RemoteError as e:
        raise click.ClickException(f"Login failed: {e}")

    console.print(f"[green]✓[/green] Logged in as {email}")
    _report_login(app)


@click.command()
@click.argument("email")
@click.option(
    "--password",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="Account password",
)
@click.pass_obj
def register(app: PomodoroSyncApp, email: str, password: str) -> None:
    """Create an account and log into it."""
    try:
        asyncio.run(_login(app, email, password, new=True))
    except RemoteError as e:
        raise click.ClickException(f"Registration failed: {e}")

    console.print(f"[green]✓[/green] Registered and logged in as {email}")
    _report_login(app)


@click.command()
@click.pass_obj
def logout(app: PomodoroSyncApp) -> None:
    """Forget the session token. Local data is kept."""
    asyncio.run(app.auth.logout())
    console.print("[green]✓[/green] Logged out")


@click.command()
@click.pass_obj
def status(app: PomodoroSyncApp) -> None:
    """Show login, connectivity and merge state."""
    asyncio.run(app.start())

    entries = app.store.read_entries()
    info: Dict[str, Any] = {
        "authenticated": app.auth.is_authenticated,
        "online": app.connectivity.online,
        "local_entries": len(entries),
        "unsynced_entries": sum(1 for entry in entries if not entry.is_synced),
    }
    info.update(app.coordinator.describe())
    display_status(info)

"""Reconciliation commands: background sync and merge decisions."""

import asyncio
import logging
from typing import Optional

import click

from ...core.app import PomodoroSyncApp
from ...core.sync import EntriesPolicy, OutcomeStatus, SettingsPolicy
from ...exceptions import MergeInProgressError, NoPendingDecisionError
from ..display import (
    console,
    display_background_result,
    display_outcome,
    display_pending,
)

logger = logging.getLogger(__name__)


async def _sync(app: PomodoroSyncApp) -> None:
    await app.start()
    if not app.connectivity.online:
        console.print("[yellow]Offline: nothing to sync[/yellow]")
        return
    if not app.auth.is_authenticated:
        console.print("[yellow]Not logged in: nothing to sync[/yellow]")
        return

    if app.coordinator.pending is not None:
        display_outcome(await app.coordinator.retry())
        if app.coordinator.pending is not None:
            console.print("Run [bold]pomodoro-sync merge[/bold] to decide how to merge.")
            return

    display_background_result(await app.trigger.reconcile_background())


@click.command("sync")
@click.pass_obj
def sync_command(app: PomodoroSyncApp) -> None:
    """Push offline changes and refresh from the account."""
    asyncio.run(_sync(app))


async def _merge(
    app: PomodoroSyncApp,
    settings_policy: Optional[str],
    entries_policy: Optional[str],
) -> None:
    await app.start()
    coordinator = app.coordinator

    if coordinator.pending is None:
        if not app.flag.is_set:
            console.print("[green]✓[/green] No merge decision pending")
            return
        # Detection did not complete earlier; try again
        outcome = await coordinator.retry()
        display_outcome(outcome)
        if coordinator.pending is None:
            return

    pending = coordinator.pending
    if pending.is_resolved:
        display_outcome(await coordinator.retry())
        return

    display_pending(pending)

    if pending.settings_open:
        policy = settings_policy or click.prompt(
            "Settings: merge local into account or skip (keep account)",
            type=click.Choice([p.value for p in SettingsPolicy]),
            default=SettingsPolicy.MERGE.value,
        )
        outcome = await coordinator.resolve_settings(SettingsPolicy(policy))
        display_outcome(outcome)
        if outcome.status == OutcomeStatus.FAILED:
            return

    if pending.entries_open:
        policy = entries_policy or click.prompt(
            "Sessions: merge local-only, skip them, or replace account sessions",
            type=click.Choice([p.value for p in EntriesPolicy]),
            default=EntriesPolicy.MERGE.value,
        )
        display_outcome(await coordinator.resolve_entries(EntriesPolicy(policy)))


@click.command()
@click.option(
    "--settings",
    "settings_policy",
    type=click.Choice([p.value for p in SettingsPolicy]),
    help="How to resolve differing settings",
)
@click.option(
    "--entries",
    "entries_policy",
    type=click.Choice([p.value for p in EntriesPolicy]),
    help="How to resolve sessions only found locally",
)
@click.pass_obj
def merge(
    app: PomodoroSyncApp,
    settings_policy: Optional[str],
    entries_policy: Optional[str],
) -> None:
    """Decide how local data is merged into the account."""
    try:
        asyncio.run(_merge(app, settings_policy, entries_policy))
    except (MergeInProgressError, NoPendingDecisionError) as e:
        raise click.ClickException(str(e))

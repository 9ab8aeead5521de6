"""Display formatters and UI helpers for CLI."""

import logging
from typing import Any, Dict, Optional

from rich.console import Console
from rich.table import Table

from ...core.sync import (
    BackgroundSyncResult,
    CoordinatorOutcome,
    OutcomeStatus,
    PendingDecision,
)
from ...core.tracking import SettingsResult
from ...models import BackupInfo, Settings, StatsSummary
from ...utils.time_utils import format_duration

console = Console()
logger = logging.getLogger(__name__)

_OUTCOME_STYLES = {
    OutcomeStatus.SYNCED: "green",
    OutcomeStatus.COMPLETED: "green",
    OutcomeStatus.RESOLVED: "cyan",
    OutcomeStatus.PENDING_DECISION: "yellow",
    OutcomeStatus.DISCARDED: "yellow",
    OutcomeStatus.FAILED: "red",
}


def display_notice(notice: Optional[str]) -> None:
    """Print a degraded-mode notice, if any."""
    if notice:
        console.print(f"[yellow]⚠️  {notice}[/yellow]")


def display_outcome(outcome: CoordinatorOutcome) -> None:
    """Display a coordinator outcome.

    Args:
        outcome: Outcome returned by the merge coordinator
    """
    style = _OUTCOME_STYLES.get(outcome.status, "white")
    mark = "✗" if outcome.status == OutcomeStatus.FAILED else "✓"
    console.print(f"[{style}]{mark}[/{style}] {outcome.message or outcome.status.value}")


def display_settings(settings: Settings, title: str = "Settings") -> None:
    """Display timer settings as a table."""
    table = Table(title=title, show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("Pomodoro", f"{settings.pomodoro_duration:g} min")
    table.add_row("Short break", f"{settings.short_break_duration:g} min")
    table.add_row("Long break", f"{settings.long_break_duration:g} min")
    table.add_row("Auto-start break", _yes_no(settings.auto_start_break))
    table.add_row("Auto-start pomodoro", _yes_no(settings.auto_start_pomodoro))
    table.add_row("Last updated", settings.last_updated or "[dim]never[/dim]")

    console.print(table)


def display_settings_result(result: SettingsResult) -> None:
    """Display settings together with where they came from."""
    display_settings(result.settings, title=f"Settings ({result.source})")
    display_notice(result.notice)


def display_stats(summary: StatsSummary) -> None:
    """Display completed-session statistics."""
    table = Table(title=f"Stats ({summary.source})", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("Pomodoros completed", str(summary.count))
    table.add_row("Total focus time", summary.total_duration_formatted)

    console.print(table)
    display_notice(summary.notice)


def display_pending(pending: PendingDecision) -> None:
    """Display an outstanding merge decision side by side."""
    console.print("\n[bold yellow]Your local data differs from your account[/bold yellow]")

    if pending.settings_open:
        table = Table(title="Settings", show_header=True, header_style="bold magenta")
        table.add_column("Field", style="cyan")
        table.add_column("Local", justify="right")
        table.add_column("Account", justify="right")
        local = pending.local_settings.to_wire()
        remote = pending.remote_settings.to_wire()
        for field_name in Settings.WIRE_FIELDS:
            local_value, remote_value = local.get(field_name), remote.get(field_name)
            style = "yellow" if local_value != remote_value else "dim"
            table.add_row(
                field_name, f"[{style}]{local_value}[/{style}]", str(remote_value)
            )
        console.print(table)

    if pending.entries_open:
        entries = pending.local_only_entries
        total = sum(entry.pomodoro_duration for entry in entries)
        console.print(
            f"[cyan]{len(entries)}[/cyan] local session(s) not in your account "
            f"({format_duration(total)})"
        )


def display_status(status: Dict[str, Any]) -> None:
    """Display application status."""
    table = Table(title="Status", show_header=False)
    table.add_column("Item", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Logged in", _yes_no(status["authenticated"]))
    table.add_row("Online", _yes_no(status["online"]))
    table.add_row(
        "Merge pending",
        "[yellow]yes[/yellow]" if status["merge_pending"] else "no",
    )
    table.add_row("Merge state", status["state"])
    if "settings_open" in status:
        table.add_row("Settings decision open", _yes_no(status["settings_open"]))
        table.add_row("Entries decision open", _yes_no(status["entries_open"]))
    table.add_row("Local sessions", str(status["local_entries"]))
    table.add_row("Unsynced sessions", str(status["unsynced_entries"]))

    console.print(table)


def display_background_result(result: BackgroundSyncResult) -> None:
    """Display the result of a connectivity-triggered sync."""
    if result.skipped_reason:
        console.print(f"[yellow]Sync skipped: {result.skipped_reason}[/yellow]")
    if result.entries_pushed:
        console.print(f"[green]✓[/green] Pushed {result.entries_pushed} session(s)")
    if result.settings_pushed:
        console.print("[green]✓[/green] Pushed settings")
    if result.synced_down:
        console.print("[green]✓[/green] Local data refreshed from account")
    for error in result.errors:
        console.print(f"[red]✗[/red] {error}")


def display_backup_info(info: BackupInfo) -> None:
    """Display a backup summary."""
    table = Table(title="Backup", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Created", info.date)
    table.add_row("Version", info.version)
    table.add_row("Pomodoros", str(info.pomodoro_count))
    table.add_row("Total focus time", format_duration(info.total_duration))

    console.print(table)


def _yes_no(value: bool) -> str:
    return "yes" if value else "no"

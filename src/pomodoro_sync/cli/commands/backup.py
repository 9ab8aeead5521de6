"""Backup commands."""

import asyncio
from pathlib import Path
from typing import Optional

import click

from ...core.app import PomodoroSyncApp
from ...exceptions import PomodoroSyncError, RemoteError
from ..display import console, display_backup_info


@click.group()
def backup() -> None:
    """Export, import and inspect backups."""


@backup.command("export")
@click.option("--remote", is_flag=True, help="Back up the account instead of local data")
@click.option(
    "--directory",
    type=click.Path(file_okay=False, path_type=Path),
    help="Target directory (default: configured backup directory)",
)
@click.pass_obj
def export_backup(app: PomodoroSyncApp, remote: bool, directory: Optional[Path]) -> None:
    """Write a backup file."""
    try:
        document = (
            asyncio.run(app.backup.export_remote())
            if remote
            else app.backup.create_backup()
        )
        path = app.backup.export_to_file(
            directory or app.config.backup_directory, document
        )
    except (PomodoroSyncError, OSError) as e:
        raise click.ClickException(f"Export failed: {e}")

    console.print(f"[green]✓[/green] Backup written to {path}")
    display_backup_info(app.backup.backup_info(document))


@backup.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--remote", is_flag=True, help="Import into the account instead of locally")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_obj
def import_backup(app: PomodoroSyncApp, path: Path, remote: bool, yes: bool) -> None:
    """Restore a backup file, overwriting current data."""
    try:
        document = app.backup.import_from_file(path)
    except PomodoroSyncError as e:
        raise click.ClickException(str(e))

    display_backup_info(app.backup.backup_info(document))
    target = "account" if remote else "local"
    if not yes and not click.confirm(f"Overwrite {target} data with this backup?"):
        console.print("[yellow]Import cancelled[/yellow]")
        return

    try:
        if remote:
            asyncio.run(app.backup.import_remote(document))
        else:
            app.backup.restore(document)
    except (RemoteError, PomodoroSyncError) as e:
        raise click.ClickException(f"Import failed: {e}")
    console.print(f"[green]✓[/green] Backup imported into {target} data")


@backup.command("info")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def backup_info(app: PomodoroSyncApp, path: Path) -> None:
    """Show what a backup file contains."""
    try:
        document = app.backup.import_from_file(path)
    except PomodoroSyncError as e:
        raise click.ClickException(str(e))
    display_backup_info(app.backup.backup_info(document))

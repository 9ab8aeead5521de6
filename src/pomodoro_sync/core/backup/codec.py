"""Backup export and import.

A backup is a versioned JSON document holding the local settings and the full
entry log. Documents are validated field by field before anything is
restored; a document that fails validation never touches the local store.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ...database import LocalStore
from ...exceptions import BackupValidationError, PomodoroSyncError
from ...models import (
    BACKUP_VERSION,
    BackupDocument,
    BackupInfo,
    BackupStats,
)
from ...utils.time_utils import now_iso, parse_timestamp, utc_now
from ..remote import RemoteClient

logger = logging.getLogger(__name__)

BACKUP_FILENAME_PREFIX = "pomodoro-backup"


class BackupCodec:
    """Creates, validates and restores backup documents."""

    def __init__(self, store: LocalStore, remote: Optional[RemoteClient] = None) -> None:
        """Initialize backup codec.

        Args:
            store: Local store to back up and restore
            remote: Remote client for account backups (optional)
        """
        self.store = store
        self.remote = remote

    def create_backup(self) -> BackupDocument:
        """Snapshot local settings and entries.

        Server identities are left out; a restored backup is pushed as new data.
        """
        entries = [entry.without_id() for entry in self.store.read_entries()]
        return BackupDocument(
            version=BACKUP_VERSION,
            timestamp=now_iso(),
            settings=self.store.read_settings(),
            stats=BackupStats(completed=entries),
        )

    def serialize(self, document: BackupDocument) -> str:
        """Render a document as pretty-printed JSON."""
        return json.dumps(document.to_wire(), indent=2)

    def parse(self, text: str) -> BackupDocument:
        """Decode and validate backup JSON.

        Raises:
            BackupValidationError: If the text is not JSON or not a valid backup
        """
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise BackupValidationError(f"Backup is not valid JSON: {e}") from e
        return self.validate_document(raw)

    def validate_document(self, raw: Any) -> BackupDocument:
        """Validate a decoded backup document.

        Raises:
            BackupValidationError: On any missing or mistyped field
        """
        return BackupDocument.parse_strict(raw)

    def is_valid_document(self, raw: Any) -> bool:
        """Check a decoded document without raising."""
        try:
            self.validate_document(raw)
        except BackupValidationError:
            return False
        return True

    def restore(self, document: BackupDocument) -> None:
        """Overwrite local settings and entries with the backup contents.

        Raises:
            PomodoroSyncError: If the local store could not be written
        """
        if not self.store.replace_all(document.settings, document.entries):
            raise PomodoroSyncError("Could not write backup to the local store")
        logger.info("Restored backup with %d entries", len(document.entries))

    def backup_info(self, document: BackupDocument) -> BackupInfo:
        """Summarize a backup for display."""
        created = parse_timestamp(document.timestamp)
        date = (
            created.astimezone().strftime("%Y-%m-%d %H:%M:%S")
            if created is not None
            else document.timestamp
        )
        return BackupInfo(
            date=date,
            pomodoro_count=len(document.entries),
            total_duration=sum(entry.pomodoro_duration for entry in document.entries),
            version=document.version,
        )

    # =========================================================================
    # Files
    # =========================================================================

    def export_to_file(
        self, directory: Path, document: Optional[BackupDocument] = None
    ) -> Path:
        """Write a backup to ``pomodoro-backup-YYYY-MM-DD.json``.

        Args:
            directory: Target directory, created if missing
            document: Document to write (default: a fresh local backup)

        Returns:
            Path of the written file
        """
        document = document or self.create_backup()
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)

        path = directory / f"{BACKUP_FILENAME_PREFIX}-{utc_now():%Y-%m-%d}.json"
        path.write_text(self.serialize(document), encoding="utf-8")
        logger.info("Backup written to %s", path)
        return path

    def import_from_file(self, path: Path) -> BackupDocument:
        """Read and validate a backup file without restoring it.

        Raises:
            BackupValidationError: If the file cannot be read or is invalid
        """
        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise BackupValidationError(f"Failed to read backup file: {e}") from e
        return self.parse(text)

    # =========================================================================
    # Account backups
    # =========================================================================

    async def export_remote(self) -> BackupDocument:
        """Fetch a backup of the account data."""
        return await self._require_remote().export_account_backup()

    async def import_remote(self, document: BackupDocument) -> Dict[str, Any]:
        """Overwrite the account data from a validated backup."""
        document = self.validate_document(document.to_wire())
        result = await self._require_remote().import_account_backup(document)
        logger.info("Imported backup into account (%d entries)", len(document.entries))
        return result

    def _require_remote(self) -> RemoteClient:
        if self.remote is None:
            raise PomodoroSyncError("No remote client configured for account backups")
        return self.remote

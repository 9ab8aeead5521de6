"""Models for the pomodoro sync engine."""

from .models import (
    BACKUP_VERSION,
    BackupDocument,
    BackupInfo,
    BackupStats,
    CompletedEntry,
    MergeResult,
    Settings,
    StatsSummary,
    SyncSnapshot,
    is_number,
    valid_entries,
)

__all__ = [
    "BACKUP_VERSION",
    "BackupDocument",
    "BackupInfo",
    "BackupStats",
    "CompletedEntry",
    "MergeResult",
    "Settings",
    "StatsSummary",
    "SyncSnapshot",
    "is_number",
    "valid_entries",
]

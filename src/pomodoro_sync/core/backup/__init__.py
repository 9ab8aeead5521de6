"""Backup documents for local and account data."""

from .codec import BACKUP_FILENAME_PREFIX, BackupCodec

__all__ = ["BackupCodec", "BACKUP_FILENAME_PREFIX"]

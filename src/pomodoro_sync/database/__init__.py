"""Local persistence layer."""

from .local_store import (
    ENTRIES_KEY,
    MERGE_PENDING_KEY,
    SETTINGS_KEY,
    TOKEN_KEY,
    LocalStore,
)
from .models import Base, StoreRecord

__all__ = [
    "Base",
    "StoreRecord",
    "LocalStore",
    "SETTINGS_KEY",
    "ENTRIES_KEY",
    "MERGE_PENDING_KEY",
    "TOKEN_KEY",
]

"""Contract for the authenticated remote account store.

The transport is not part of the contract; only the calls and their
semantics are. Every call is a coroutine and may raise a RemoteError subclass.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Union

from ...models import (
    BackupDocument,
    CompletedEntry,
    MergeResult,
    Settings,
    SyncSnapshot,
)


class RemoteClient(ABC):
    """Request/response accessor for one account's data."""

    @abstractmethod
    async def login(self, email: str, password: str) -> str:
        """Authenticate and return a session token."""

    @abstractmethod
    async def register(self, email: str, password: str) -> Dict[str, Any]:
        """Create an account."""

    @abstractmethod
    async def get_settings(self) -> Settings:
        """Read the account settings."""

    @abstractmethod
    async def save_settings(
        self, settings: Union[Settings, Dict[str, Any]]
    ) -> Settings:
        """Save full or partial settings and return the stored record."""

    @abstractmethod
    async def get_all_completed_entries(self) -> List[CompletedEntry]:
        """Read the full timestamped entry history."""

    @abstractmethod
    async def get_completed_count(self) -> int:
        """Count completed entries."""

    @abstractmethod
    async def record_completed(self, entry: CompletedEntry) -> CompletedEntry:
        """Store one newly completed entry and return it with its identity."""

    @abstractmethod
    async def get_sync_snapshot(self) -> SyncSnapshot:
        """Read settings and entries in a single call."""

    @abstractmethod
    async def apply_merge(
        self,
        settings: Optional[Settings] = None,
        entries: Optional[Sequence[CompletedEntry]] = None,
    ) -> MergeResult:
        """Merge local data into the account.

        Settings replace the remote record. Entries are added to the remote
        log; nothing is removed. An empty entries list is a no-op.
        """

    @abstractmethod
    async def reset_all_entries(self) -> None:
        """Delete every remote entry. Only the replace policy uses this."""

    @abstractmethod
    async def export_account_backup(self) -> BackupDocument:
        """Produce a backup document of the account data."""

    @abstractmethod
    async def import_account_backup(self, document: BackupDocument) -> Dict[str, Any]:
        """Overwrite the account data from a backup document."""

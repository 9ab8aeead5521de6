"""Shared pytest fixtures."""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

import pytest

from pomodoro_sync.config import Config
from pomodoro_sync.core.app import PomodoroSyncApp
from pomodoro_sync.core.remote import RemoteClient
from pomodoro_sync.core.sync import EventBus, MergeCoordinator, MergePendingFlag
from pomodoro_sync.database import LocalStore
from pomodoro_sync.exceptions import TransientNetworkFailure
from pomodoro_sync.models import (
    BACKUP_VERSION,
    BackupDocument,
    BackupStats,
    CompletedEntry,
    MergeResult,
    Settings,
    SyncSnapshot,
)
from pomodoro_sync.utils.time_utils import now_iso


class FakeRemoteClient(RemoteClient):
    """In-memory account store.

    ``apply_merge`` appends blindly, like a server without deduplication, so
    a client that pushes the same entry twice ends up with a duplicate.
    Every call yields to the event loop once, making it a real suspension
    point.
    """

    def __init__(self) -> None:
        self.settings = Settings()
        self.entries: List[CompletedEntry] = []
        self.calls: List[str] = []
        self.failures: Dict[str, List[Any]] = {}
        self.after_hooks: Dict[str, Callable[[], Awaitable[None]]] = {}
        self._next_id = 1

    # Test controls

    def seed(self, *entries: CompletedEntry) -> None:
        for entry in entries:
            self._store(entry)

    def fail(self, op: str, error: Optional[Exception] = None, times: Optional[int] = 1) -> None:
        """Make the next ``times`` calls of ``op`` raise (None: until cleared)."""
        self.failures[op] = [error or TransientNetworkFailure(f"{op}: unreachable"), times]

    def clear_failures(self) -> None:
        self.failures.clear()

    def after(self, op: str, hook: Callable[[], Awaitable[None]]) -> None:
        """Run ``hook`` once, after ``op`` computed its result but before it returns."""
        self.after_hooks[op] = hook

    def timestamps(self) -> List[Optional[str]]:
        return sorted(entry.identity for entry in self.entries)

    def count(self, op: str) -> int:
        return self.calls.count(op)

    # Plumbing

    def _store(self, entry: CompletedEntry) -> CompletedEntry:
        stored = entry.model_copy(update={"id": f"r{self._next_id}"})
        self._next_id += 1
        self.entries.append(stored)
        return stored

    async def _enter(self, op: str) -> None:
        self.calls.append(op)
        await asyncio.sleep(0)
        failure = self.failures.get(op)
        if failure is None:
            return
        error, times = failure
        if times is not None:
            if times <= 1:
                del self.failures[op]
            else:
                failure[1] = times - 1
        raise error

    async def _leave(self, op: str, result: Any) -> Any:
        hook = self.after_hooks.pop(op, None)
        if hook is not None:
            await hook()
        return result

    # Contract

    async def login(self, email: str, password: str) -> str:
        await self._enter("login")
        return await self._leave("login", f"token-{email}")

    async def register(self, email: str, password: str) -> Dict[str, Any]:
        await self._enter("register")
        return await self._leave("register", {"email": email})

    async def get_settings(self) -> Settings:
        await self._enter("get_settings")
        return await self._leave("get_settings", self.settings)

    async def save_settings(self, settings: Union[Settings, Dict[str, Any]]) -> Settings:
        await self._enter("save_settings")
        if isinstance(settings, Settings):
            self.settings = settings
        else:
            self.settings = Settings.model_validate({**self.settings.to_wire(), **settings})
        return await self._leave("save_settings", self.settings)

    async def get_all_completed_entries(self) -> List[CompletedEntry]:
        await self._enter("get_all_completed_entries")
        return await self._leave("get_all_completed_entries", list(self.entries))

    async def get_completed_count(self) -> int:
        await self._enter("get_completed_count")
        return await self._leave("get_completed_count", len(self.entries))

    async def record_completed(self, entry: CompletedEntry) -> CompletedEntry:
        await self._enter("record_completed")
        return await self._leave("record_completed", self._store(entry))

    async def get_sync_snapshot(self) -> SyncSnapshot:
        await self._enter("get_sync_snapshot")
        snapshot = SyncSnapshot(settings=self.settings, entries=list(self.entries))
        return await self._leave("get_sync_snapshot", snapshot)

    async def apply_merge(
        self,
        settings: Optional[Settings] = None,
        entries: Optional[Sequence[CompletedEntry]] = None,
    ) -> MergeResult:
        await self._enter("apply_merge")
        if settings is not None:
            self.settings = settings
        for entry in entries or []:
            self._store(entry)
        result = MergeResult(settings=self.settings, entries=list(self.entries))
        return await self._leave("apply_merge", result)

    async def reset_all_entries(self) -> None:
        await self._enter("reset_all_entries")
        self.entries = []
        return await self._leave("reset_all_entries", None)

    async def export_account_backup(self) -> BackupDocument:
        await self._enter("export_account_backup")
        document = BackupDocument(
            version=BACKUP_VERSION,
            timestamp=now_iso(),
            settings=self.settings,
            stats=BackupStats(completed=[e.without_id() for e in self.entries]),
        )
        return await self._leave("export_account_backup", document)

    async def import_account_backup(self, document: BackupDocument) -> Dict[str, Any]:
        await self._enter("import_account_backup")
        self.settings = document.settings
        self.entries = []
        self.seed(*document.entries)
        return await self._leave("import_account_backup", {"imported": len(self.entries)})


@pytest.fixture
def store(tmp_path):
    """Create a temporary local store."""
    local_store = LocalStore(tmp_path / "store.db")
    yield local_store
    local_store.close()


@pytest.fixture
def authed_store(store):
    """Local store holding a session token."""
    store.write_token("test-token")
    return store


@pytest.fixture
def remote():
    """Create an empty in-memory account."""
    return FakeRemoteClient()


@pytest.fixture
def events():
    """Create an event bus."""
    return EventBus()


@pytest.fixture
def flag(store):
    """Create a merge-pending flag on the temporary store."""
    return MergePendingFlag(store)


@pytest.fixture
def coordinator(authed_store, remote, flag, events):
    """Create a merge coordinator for an authenticated session."""
    return MergeCoordinator(authed_store, remote, flag, events)


@pytest.fixture
def config(tmp_path, monkeypatch):
    """Configuration pointing at temporary paths."""
    monkeypatch.setenv("POMODORO_SYNC_DATABASE_PATH", str(tmp_path / "app.db"))
    monkeypatch.setenv("POMODORO_SYNC_BACKUP_DIRECTORY", str(tmp_path / "backups"))
    monkeypatch.delenv("POMODORO_SYNC_LOG_FILE", raising=False)
    monkeypatch.delenv("POMODORO_SYNC_REQUEST_TIMEOUT", raising=False)
    return Config()


@pytest.fixture
def app(config, store, remote):
    """Create an application wired to the fake account."""
    return PomodoroSyncApp(config=config, remote=remote, store=store)

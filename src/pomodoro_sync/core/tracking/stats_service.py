"""Recording completed sessions and summarizing them."""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from ...database import LocalStore
from ...exceptions import PomodoroSyncError, RemoteError
from ...models import CompletedEntry, StatsSummary
from ..remote import RemoteClient
from ..sync.merge_flag import MergePendingFlag

logger = logging.getLogger(__name__)


@dataclass
class RecordResult:
    """Outcome of recording one completed session."""

    entry: CompletedEntry
    synced: bool = False
    notice: Optional[str] = None


class StatsService:
    """Appends completed sessions locally and mirrors them to the account."""

    def __init__(
        self,
        store: LocalStore,
        remote: RemoteClient,
        flag: MergePendingFlag,
        is_online: Callable[[], bool] = lambda: True,
    ) -> None:
        self.store = store
        self.remote = remote
        self.flag = flag
        self.is_online = is_online

    def _can_reach_account(self) -> bool:
        return self.store.read_token() is not None and self.is_online()

    async def record_completion(
        self, pomodoro_duration: Optional[float] = None
    ) -> RecordResult:
        """Log a finished work session.

        The entry is always appended locally first. It is sent to the account
        right away only when authenticated, online and no merge is pending;
        otherwise it waits for the next reconciliation.

        Args:
            pomodoro_duration: Session length in minutes
                (default: current pomodoro setting)

        Returns:
            RecordResult with the stored entry
        """
        if pomodoro_duration is None:
            pomodoro_duration = self.store.read_settings().pomodoro_duration
        entry = CompletedEntry.new(pomodoro_duration)
        if not self.store.append_entry(entry):
            raise PomodoroSyncError("Could not record the session locally")
        logger.info("Recorded %s minute session at %s", pomodoro_duration, entry.timestamp)

        if not self._can_reach_account():
            return RecordResult(entry)
        if self.flag.is_set:
            return RecordResult(
                entry, notice="Saved locally; a merge decision is pending"
            )

        try:
            stored = await self.remote.record_completed(entry)
        except RemoteError as e:
            logger.warning("Failed to record session in account: %s", e)
            return RecordResult(
                entry, notice="Saved locally; will sync when the connection returns"
            )

        # A merge may have started while the request was in flight
        if stored.is_synced and not self.flag.is_set:
            self._attach_identity(entry, stored)
            return RecordResult(stored, synced=True)
        return RecordResult(entry, synced=True)

    def _attach_identity(self, entry: CompletedEntry, stored: CompletedEntry) -> None:
        entries: List[CompletedEntry] = []
        for local in self.store.read_entries():
            if local.identity == entry.identity and not local.is_synced:
                local = local.model_copy(update={"id": stored.id})
            entries.append(local)
        self.store.write_all_entries(entries)

    async def summary(self) -> StatsSummary:
        """Count and total focus time, from the account when reachable."""
        if self._can_reach_account():
            try:
                count = await self.remote.get_completed_count()
                entries = await self.remote.get_all_completed_entries()
            except RemoteError as e:
                logger.warning("Failed to load account stats: %s", e)
                return self._local_summary(
                    notice="Failed to load stats from your account, showing local stats"
                )
            return StatsSummary(
                count=count,
                total_duration=sum(entry.pomodoro_duration for entry in entries),
                source="remote",
            )
        return self._local_summary()

    def _local_summary(self, notice: Optional[str] = None) -> StatsSummary:
        entries = self.store.read_entries()
        return StatsSummary(
            count=len(entries),
            total_duration=sum(entry.pomodoro_duration for entry in entries),
            source="local",
            notice=notice,
        )

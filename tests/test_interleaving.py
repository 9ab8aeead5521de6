"""Interleaving tests: background sync racing the login merge.

Each remote call of the fake account yields to the event loop, so tasks
started together interleave at every remote call just like real requests.
"""

import asyncio

import pytest

from pomodoro_sync.core.sync import EntriesPolicy, OutcomeStatus, SyncTrigger
from pomodoro_sync.core.tracking import StatsService
from pomodoro_sync.models import CompletedEntry

T1 = "2024-03-01T09:00:00.000Z"
T2 = "2024-03-01T10:00:00.000Z"


def _entry(timestamp, entry_id=None):
    return CompletedEntry(timestamp=timestamp, pomodoro_duration=25, id=entry_id)


def _local_timestamps(store):
    return sorted(entry.identity for entry in store.read_entries())


@pytest.fixture
def trigger(authed_store, remote, coordinator, events):
    """Create a sync trigger for an authenticated, online session."""
    return SyncTrigger(authed_store, remote, coordinator, events)


@pytest.fixture
def offline_entry(authed_store, remote):
    """Remote holds T1; T2 was recorded offline."""
    remote.seed(_entry(T1))
    authed_store.write_all_entries([_entry(T1, "r1"), _entry(T2)])
    return authed_store


class TestLoginDuringBackgroundSync:
    """Test a login arriving while the connectivity sync runs."""

    @pytest.mark.asyncio
    async def test_login_before_first_push(self, trigger, coordinator, offline_entry, remote):
        """Test background sync backs off and the merge pushes the entry once."""
        background = asyncio.create_task(trigger.reconcile_background())
        login = asyncio.create_task(coordinator.begin_after_login())
        result, outcome = await asyncio.gather(background, login)

        assert result.skipped_reason == "merge started"
        assert result.entries_pushed == 0
        assert outcome.status == OutcomeStatus.PENDING_DECISION

        resolved = await coordinator.resolve_entries(EntriesPolicy.MERGE)

        assert resolved.status == OutcomeStatus.COMPLETED
        assert remote.timestamps() == [T1, T2]
        assert _local_timestamps(offline_entry) == [T1, T2]

    @pytest.mark.asyncio
    async def test_login_while_push_in_flight(self, trigger, coordinator, offline_entry, remote):
        """Test a push that lands during detection is seen by the merge."""
        background = asyncio.create_task(trigger.reconcile_background())
        while "apply_merge" not in remote.calls:
            await asyncio.sleep(0)

        outcome = await coordinator.begin_after_login()
        result = await background

        assert result.entries_pushed == 1
        assert result.skipped_reason == "merge started"
        assert outcome.status == OutcomeStatus.SYNCED
        assert remote.timestamps() == [T1, T2]
        assert _local_timestamps(offline_entry) == [T1, T2]
        assert coordinator.flag.is_set is False

    @pytest.mark.asyncio
    async def test_background_sync_after_login_started(self, trigger, coordinator, offline_entry, remote):
        """Test a connectivity sync started after login does nothing."""
        login = asyncio.create_task(coordinator.begin_after_login())
        await asyncio.sleep(0)

        result = await trigger.reconcile_background()
        await login

        assert result.skipped_reason == "merge pending"
        assert remote.count("apply_merge") == 0
        assert _local_timestamps(offline_entry) == [T1, T2]


class TestStaleSyncDown:
    """Test sync-down results that outlive a merge."""

    @pytest.mark.asyncio
    async def test_full_merge_during_fetch_discards_result(self, coordinator, offline_entry, remote):
        """Test a snapshot read before a whole merge cycle is not written."""

        async def merge_meanwhile():
            await coordinator.begin_after_login()
            await coordinator.resolve_entries(EntriesPolicy.MERGE)

        remote.after("get_sync_snapshot", merge_meanwhile)
        outcome = await coordinator.sync_down()

        assert outcome.status == OutcomeStatus.DISCARDED
        assert coordinator.flag.is_set is False
        assert _local_timestamps(offline_entry) == [T1, T2]
        assert all(e.is_synced for e in offline_entry.read_entries())


class TestRecordingDuringDecision:
    """Test sessions finished while a decision is pending."""

    @pytest.mark.asyncio
    async def test_session_survives_skip_and_syncs_later(self, trigger, coordinator, offline_entry, remote, flag):
        """Test a session recorded mid-decision reaches the account later."""
        stats = StatsService(offline_entry, remote, flag)
        await coordinator.begin_after_login()

        recorded = await stats.record_completion(25)
        assert recorded.synced is False
        assert "record_completed" not in remote.calls

        await coordinator.resolve_entries(EntriesPolicy.SKIP)
        local = _local_timestamps(offline_entry)
        assert recorded.entry.identity in local
        assert T2 not in local

        result = await trigger.reconcile_background()

        assert result.entries_pushed == 1
        assert recorded.entry.identity in remote.timestamps()
        assert len(remote.entries) == 2

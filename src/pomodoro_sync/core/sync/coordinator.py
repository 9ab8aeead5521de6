"""Post-login merge coordination.

The coordinator owns the merge state machine::

    IDLE -> PENDING_DECISION(settings?, entries?) -> RESOLVING -> IDLE

After a successful login it raises the merge-pending flag, compares the local
store with the remote account and, when they differ, opens one decision slot
for settings and/or one for entries. Each slot is resolved on its own. Only
when both are closed does the coordinator run the closing sync-down and lower
the flag.

Remote failures never raise out of the coordinator: they come back as a
FAILED outcome, with the flag and the pending decision left untouched so the
same step can be retried.
"""

import logging
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set

from ...database import LocalStore
from ...exceptions import (
    IrrecoverableWriteFailure,
    MergeInProgressError,
    NoPendingDecisionError,
    RemoteError,
)
from ...models import CompletedEntry, Settings, SyncSnapshot
from ..remote import RemoteClient
from .divergence import DivergenceDetector, DivergenceReport, unique_entries
from .events import EventBus, SyncEvent
from .merge_flag import MergePendingFlag

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "Could not complete merge this time"


class MergeState(str, Enum):
    """Coordinator states."""

    IDLE = "idle"
    PENDING_DECISION = "pending-decision"
    RESOLVING = "resolving"


class SettingsPolicy(str, Enum):
    """Resolution policies for the settings slot."""

    MERGE = "merge"  # push local settings over remote
    SKIP = "skip"  # keep remote settings


class EntriesPolicy(str, Enum):
    """Resolution policies for the entries slot."""

    MERGE = "merge"  # push local-only entries additively
    SKIP = "skip"  # drop local-only entries
    REPLACE = "replace"  # wipe remote entries, push the full local log


class OutcomeStatus(str, Enum):
    """What a coordinator call achieved."""

    SYNCED = "synced"
    PENDING_DECISION = "pending-decision"
    RESOLVED = "resolved"
    COMPLETED = "completed"
    DISCARDED = "discarded"
    FAILED = "failed"


@dataclass
class PendingDecision:
    """An outstanding merge decision.

    Attributes:
        report: Divergence found at detection time
        local_settings: Local settings at detection time
        remote_settings: Remote settings at detection time
        settings_open: Whether the settings slot still awaits a policy
        entries_open: Whether the entries slot still awaits a policy
        generation: Merge-pending flag generation this decision belongs to
        known_local: Canonical timestamps of the local log at detection time
    """

    report: DivergenceReport
    local_settings: Settings
    remote_settings: Settings
    settings_open: bool
    entries_open: bool
    generation: int
    known_local: Set[str] = dataclass_field(default_factory=set)

    @property
    def is_resolved(self) -> bool:
        """Whether both slots are closed."""
        return not self.settings_open and not self.entries_open

    @property
    def local_only_entries(self) -> List[CompletedEntry]:
        """Entries that only exist locally, as found at detection time."""
        return self.report.entries.unique_to_local


@dataclass
class CoordinatorOutcome:
    """Result of a coordinator call, renderable without exception handling."""

    status: OutcomeStatus
    message: str = ""
    pending: Optional[PendingDecision] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        """Whether the call did not fail."""
        return self.status != OutcomeStatus.FAILED


class MergeCoordinator:
    """Detects divergence after login and applies merge decisions."""

    def __init__(
        self,
        store: LocalStore,
        remote: RemoteClient,
        flag: MergePendingFlag,
        events: EventBus,
        detector: Optional[DivergenceDetector] = None,
    ) -> None:
        """Initialize merge coordinator.

        Args:
            store: Local store to reconcile
            remote: Remote account client
            flag: Merge-pending flag shared with every sync-down writer
            events: Bus used to announce pending and resolved merges
            detector: Divergence detector (default: new instance)
        """
        self.store = store
        self.remote = remote
        self.flag = flag
        self.events = events
        self.detector = detector or DivergenceDetector()
        self.state = MergeState.IDLE
        self.pending: Optional[PendingDecision] = None
        self._login_deferred = False

    # =========================================================================
    # Detection
    # =========================================================================

    async def begin_after_login(self) -> CoordinatorOutcome:
        """Start the detect-and-possibly-prompt flow after authentication.

        Raises:
            MergeInProgressError: If a resolution is currently running
        """
        if self.state == MergeState.RESOLVING:
            raise MergeInProgressError("A merge resolution is already in progress")

        generation = self.flag.set()
        self.pending = None
        self.state = MergeState.IDLE
        logger.info("Checking for divergence after login")
        return await self._detect(generation)

    async def recover(self) -> Optional[CoordinatorOutcome]:
        """Re-run detection for a flag persisted by an earlier process.

        Returns:
            The detection outcome, or None if there was nothing to recover
        """
        if self.state == MergeState.RESOLVING or self.pending is not None:
            return None
        if not self.flag.is_set:
            return None
        logger.info("Merge-pending flag found without a decision, re-running detection")
        return await self.begin_after_login()

    def defer_login(self) -> None:
        """Re-run detection once the resolution in progress has ended.

        A login arriving while a resolution is running cannot start detection
        right away; it is remembered instead of dropped.
        """
        self._login_deferred = True
        logger.info("Login arrived during a resolution, detection deferred")

    async def _after_resolution(
        self, outcome: CoordinatorOutcome
    ) -> CoordinatorOutcome:
        if not self._login_deferred or self.state == MergeState.RESOLVING:
            return outcome
        self._login_deferred = False
        detection = await self.begin_after_login()
        logger.info("Deferred login detection: %s", detection.status.value)
        return outcome

    async def _detect(self, generation: int) -> CoordinatorOutcome:
        try:
            snapshot = await self.remote.get_sync_snapshot()
        except RemoteError as e:
            logger.warning("Divergence detection failed: %s", e)
            return CoordinatorOutcome(
                OutcomeStatus.FAILED, f"{FAILURE_MESSAGE}: {e}", error=e
            )

        if generation != self.flag.generation:
            logger.info("Detection result discarded, a newer login took over")
            return CoordinatorOutcome(
                OutcomeStatus.DISCARDED, "Superseded by a newer login"
            )

        local_settings = self.store.read_settings()
        local_entries = self.store.read_entries()
        report = self.detector.classify(
            local_settings, snapshot.settings, local_entries, snapshot.entries
        )
        logger.debug("Divergence report: %s", report.get_summary())

        if not report.needs_decision:
            return await self._finish(
                generation, OutcomeStatus.SYNCED, snapshot=snapshot
            )

        pending = PendingDecision(
            report=report,
            local_settings=local_settings,
            remote_settings=snapshot.settings,
            settings_open=report.settings_differ,
            entries_open=bool(report.entries.unique_to_local),
            generation=generation,
            known_local={e.identity for e in local_entries if e.identity},
        )
        self.pending = pending
        self.state = MergeState.PENDING_DECISION
        logger.info(
            "Merge decision required (settings: %s, local-only entries: %d)",
            "differ" if pending.settings_open else "equal",
            len(pending.local_only_entries),
        )
        await self.events.publish(
            SyncEvent.MERGE_PENDING, {"summary": report.get_summary()}
        )
        return CoordinatorOutcome(
            OutcomeStatus.PENDING_DECISION,
            "Local data differs from your account",
            pending=pending,
        )

    # =========================================================================
    # Resolution
    # =========================================================================

    def _begin_resolution(self, slot: str) -> PendingDecision:
        if self.state == MergeState.RESOLVING:
            raise MergeInProgressError("A merge resolution is already in progress")
        pending = self.pending
        if pending is None:
            raise NoPendingDecisionError("No merge decision is pending")
        is_open = pending.settings_open if slot == "settings" else pending.entries_open
        if not is_open:
            raise NoPendingDecisionError(f"No {slot} decision is pending")
        self.state = MergeState.RESOLVING
        return pending

    async def resolve_settings(self, policy: SettingsPolicy) -> CoordinatorOutcome:
        """Resolve the settings slot.

        Args:
            policy: MERGE pushes local settings with a fresh ``lastUpdated``;
                SKIP keeps the remote settings

        Raises:
            MergeInProgressError: If another resolution is running
            NoPendingDecisionError: If no settings decision is open
        """
        return await self._after_resolution(await self._resolve_settings(policy))

    async def _resolve_settings(self, policy: SettingsPolicy) -> CoordinatorOutcome:
        policy = SettingsPolicy(policy)
        pending = self._begin_resolution("settings")

        if policy == SettingsPolicy.MERGE:
            local = self.store.read_settings().stamped()
            try:
                result = await self.remote.apply_merge(settings=local)
            except RemoteError as e:
                return self._resolution_failed("settings", e)
            self.store.write_settings(result.settings or local)
            logger.info("Local settings pushed to account")
        else:
            # Persist the choice so a re-run detection does not reopen the slot
            if not self.store.write_settings(pending.remote_settings):
                logger.warning("Could not store account settings locally")
            logger.info("Keeping account settings")

        pending.settings_open = False
        return await self._slot_closed(pending, "Settings resolved")

    async def resolve_entries(self, policy: EntriesPolicy) -> CoordinatorOutcome:
        """Resolve the entries slot.

        Args:
            policy: MERGE pushes local-only entries, SKIP drops them, REPLACE
                wipes the remote log and pushes the full local log

        Raises:
            MergeInProgressError: If another resolution is running
            NoPendingDecisionError: If no entries decision is open
        """
        return await self._after_resolution(await self._resolve_entries(policy))

    async def _resolve_entries(self, policy: EntriesPolicy) -> CoordinatorOutcome:
        policy = EntriesPolicy(policy)
        pending = self._begin_resolution("entries")

        try:
            if policy == EntriesPolicy.MERGE:
                await self._merge_entries()
            elif policy == EntriesPolicy.REPLACE:
                await self._replace_entries()
            else:
                logger.info("Discarding %d local-only entries", len(pending.local_only_entries))
        except RemoteError as e:
            return self._resolution_failed("entries", e)

        pending.entries_open = False
        return await self._slot_closed(pending, "Entries resolved")

    async def _merge_entries(self) -> None:
        # Recompute against fresh remote state so a retried merge never duplicates
        remote_entries = await self.remote.get_all_completed_entries()
        comparison = self.detector.compare_entries(
            self.store.read_entries(), remote_entries
        )
        to_push = [entry.without_id() for entry in comparison.unique_to_local]
        if not to_push:
            logger.info("Remote already holds every local entry")
            return

        result = await self.remote.apply_merge(entries=to_push)
        logger.info("Pushed %d local-only entries", len(to_push))
        self._refresh_entries(result.entries)

    async def _replace_entries(self) -> None:
        local_entries = [e.without_id() for e in unique_entries(self.store.read_entries())]
        await self.remote.reset_all_entries()
        try:
            result = await self.remote.apply_merge(entries=local_entries)
        except RemoteError as e:
            raise IrrecoverableWriteFailure(
                "Account entries were cleared but local entries could not be "
                f"uploaded ({e}); retry the replace",
                status_code=e.status_code,
            ) from e
        logger.info("Replaced account entries with %d local entries", len(local_entries))
        self._refresh_entries(result.entries)

    def _refresh_entries(self, remote_entries: List[CompletedEntry]) -> None:
        entries = merge_unsynced(remote_entries, self.store.read_entries())
        self.store.write_all_entries(entries)

    def _resolution_failed(self, slot: str, error: RemoteError) -> CoordinatorOutcome:
        self.state = MergeState.PENDING_DECISION
        if isinstance(error, IrrecoverableWriteFailure):
            logger.error("Resolving %s left the account partially written: %s", slot, error)
        else:
            logger.warning("Resolving %s failed: %s", slot, error)
        return CoordinatorOutcome(
            OutcomeStatus.FAILED,
            f"{FAILURE_MESSAGE}: {error}",
            pending=self.pending,
            error=error,
        )

    async def _slot_closed(
        self, pending: PendingDecision, message: str
    ) -> CoordinatorOutcome:
        if pending.is_resolved:
            return await self._finish(pending.generation, OutcomeStatus.COMPLETED)
        self.state = MergeState.PENDING_DECISION
        return CoordinatorOutcome(OutcomeStatus.RESOLVED, message, pending=pending)

    async def retry(self) -> CoordinatorOutcome:
        """Re-attempt whatever step last failed.

        Runs the closing sync-down when every slot is already resolved, re-runs
        detection when the flag is set without a decision, and otherwise does a
        plain sync-down.
        """
        if self.state == MergeState.RESOLVING:
            raise MergeInProgressError("A merge resolution is already in progress")

        if self.pending is not None:
            if self.pending.is_resolved:
                self.state = MergeState.RESOLVING
                outcome = await self._finish(
                    self.pending.generation, OutcomeStatus.COMPLETED
                )
                return await self._after_resolution(outcome)
            return CoordinatorOutcome(
                OutcomeStatus.PENDING_DECISION,
                "A merge decision is still pending",
                pending=self.pending,
            )

        if self.flag.is_set:
            return await self.begin_after_login()
        return await self.sync_down()

    # =========================================================================
    # Sync-down
    # =========================================================================

    async def _finish(
        self,
        generation: int,
        status: OutcomeStatus,
        snapshot: Optional[SyncSnapshot] = None,
    ) -> CoordinatorOutcome:
        """Closing sync-down owned by the merge that raised the flag."""
        if snapshot is None:
            try:
                snapshot = await self.remote.get_sync_snapshot()
            except RemoteError as e:
                logger.warning("Closing sync-down failed: %s", e)
                self._restore_state()
                return CoordinatorOutcome(
                    OutcomeStatus.FAILED,
                    f"{FAILURE_MESSAGE}: {e}",
                    pending=self.pending,
                    error=e,
                )

        if not self.flag.owned_by(generation):
            logger.info("Closing sync-down discarded, merge was superseded")
            self._restore_state()
            return CoordinatorOutcome(
                OutcomeStatus.DISCARDED, "Superseded by a newer login"
            )

        had_decision = self.pending is not None
        decided = self.pending.known_local if self.pending else set()
        entries = merge_unsynced(
            snapshot.entries, self.store.read_entries(), exclude=decided
        )
        if not self.store.replace_all(snapshot.settings, entries):
            self._restore_state()
            return CoordinatorOutcome(
                OutcomeStatus.FAILED,
                f"{FAILURE_MESSAGE}: local store could not be written",
                pending=self.pending,
            )

        self.flag.clear(generation)
        self.pending = None
        self.state = MergeState.IDLE
        logger.info("Local store refreshed from account (%d entries)", len(entries))

        payload: Dict[str, Any] = {"entries": len(entries)}
        if had_decision:
            await self.events.publish(SyncEvent.MERGE_RESOLVED, payload)
        await self.events.publish(SyncEvent.DATA_REFRESHED, payload)

        if status == OutcomeStatus.SYNCED:
            return CoordinatorOutcome(status, "Local data is in sync with your account")
        return CoordinatorOutcome(status, "Merge complete")

    def _restore_state(self) -> None:
        self.state = (
            MergeState.PENDING_DECISION if self.pending is not None else MergeState.IDLE
        )

    async def sync_down(self, keep_local_settings: bool = False) -> CoordinatorOutcome:
        """Refresh the local store from the account.

        The result is discarded if a merge is pending when the read starts or
        completes, or if a merge started and finished while it was in flight.
        Local entries the account has never seen are kept.

        Args:
            keep_local_settings: Refresh entries only, leaving local settings
                as they are (used when local changes could not be pushed)
        """
        if self.flag.is_set:
            return CoordinatorOutcome(
                OutcomeStatus.DISCARDED, "Merge pending, keeping local data"
            )
        started = self.flag.generation

        try:
            snapshot = await self.remote.get_sync_snapshot()
        except RemoteError as e:
            logger.warning("Sync-down failed: %s", e)
            return CoordinatorOutcome(
                OutcomeStatus.FAILED, f"Could not refresh from account: {e}", error=e
            )

        if self.flag.is_set or self.flag.generation != started:
            logger.info("Sync-down result discarded, a merge started meanwhile")
            return CoordinatorOutcome(
                OutcomeStatus.DISCARDED, "Merge pending, keeping local data"
            )

        entries = merge_unsynced(snapshot.entries, self.store.read_entries())
        if keep_local_settings:
            written = self.store.write_all_entries(entries)
        else:
            written = self.store.replace_all(snapshot.settings, entries)
        if not written:
            return CoordinatorOutcome(
                OutcomeStatus.FAILED, "Could not write the local store"
            )

        logger.debug("Sync-down wrote %d entries", len(entries))
        await self.events.publish(SyncEvent.DATA_REFRESHED, {"entries": len(entries)})
        return CoordinatorOutcome(OutcomeStatus.SYNCED, "Local data refreshed")

    def describe(self) -> Dict[str, Any]:
        """Get a summary of coordinator state."""
        summary: Dict[str, Any] = {
            "state": self.state.value,
            "merge_pending": self.flag.is_set,
        }
        if self.pending is not None:
            summary["settings_open"] = self.pending.settings_open
            summary["entries_open"] = self.pending.entries_open
            summary["local_only_entries"] = len(self.pending.local_only_entries)
        return summary


def merge_unsynced(
    remote_entries: Iterable[CompletedEntry],
    local_entries: Iterable[CompletedEntry],
    exclude: Optional[Set[str]] = None,
) -> List[CompletedEntry]:
    """Remote entries plus local entries the account has never stored.

    A local entry is carried over when it has no server identity and its
    timestamp is missing remotely. Timestamps in ``exclude`` were already
    decided on by a merge and are never carried over.

    Args:
        remote_entries: Authoritative remote log
        local_entries: Current local log
        exclude: Canonical timestamps to leave out

    Returns:
        The log to write locally
    """
    result = unique_entries(list(remote_entries))
    seen = {entry.identity for entry in result}
    skip = exclude or set()
    for entry in unique_entries(list(local_entries)):
        if entry.is_synced or entry.identity in seen or entry.identity in skip:
            continue
        seen.add(entry.identity)
        result.append(entry)
    return result

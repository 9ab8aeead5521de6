"""Sync trigger: reacts to login and connectivity events.

Two events start reconciliation:

1. ``authenticated``: the full post-login detection flow of the coordinator,
   which may open a merge decision.
2. ``connectivity-changed`` to online while authenticated: a background
   reconciliation that only ever adds data. It never opens a decision and
   backs off as soon as the merge-pending flag is raised.
"""

import logging
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from typing import Any, Callable, Dict, List, Optional

from ...database import LocalStore
from ...exceptions import MergeInProgressError, RemoteError
from ..remote import RemoteClient
from .coordinator import CoordinatorOutcome, MergeCoordinator, OutcomeStatus
from .divergence import DivergenceDetector, Relation
from .events import EventBus, SyncEvent
from .merge_flag import MergePendingFlag

logger = logging.getLogger(__name__)


class _Superseded(Exception):
    """A merge started while the background reconciliation was running."""


@dataclass
class BackgroundSyncResult:
    """Result of a connectivity-triggered reconciliation."""

    entries_pushed: int = 0
    settings_pushed: bool = False
    synced_down: bool = False
    skipped_reason: Optional[str] = None
    errors: List[str] = dataclass_field(default_factory=list)

    def add_error(self, error: str) -> None:
        """Add an error message."""
        self.errors.append(error)
        logger.warning(error)

    def get_summary(self) -> Dict[str, Any]:
        """Get summary of the reconciliation."""
        summary: Dict[str, Any] = {
            "success": len(self.errors) == 0,
            "entries_pushed": self.entries_pushed,
            "settings_pushed": self.settings_pushed,
            "synced_down": self.synced_down,
            "errors": len(self.errors),
        }
        if self.skipped_reason:
            summary["skipped"] = self.skipped_reason
        return summary


class SyncTrigger:
    """Subscribes the sync engine to login and connectivity events."""

    def __init__(
        self,
        store: LocalStore,
        remote: RemoteClient,
        coordinator: MergeCoordinator,
        events: EventBus,
        is_online: Callable[[], bool] = lambda: True,
    ) -> None:
        """Initialize sync trigger.

        Args:
            store: Local store (token presence means authenticated)
            remote: Remote account client
            coordinator: Merge coordinator for the post-login flow
            events: Event bus to subscribe to
            is_online: Returns the current connectivity state
        """
        self.store = store
        self.remote = remote
        self.coordinator = coordinator
        self.events = events
        self.is_online = is_online
        self.detector = DivergenceDetector()
        self.last_login_outcome: Optional[CoordinatorOutcome] = None
        self.last_background_result: Optional[BackgroundSyncResult] = None
        self._unsubscribers: List[Callable[[], None]] = []

    @property
    def flag(self) -> MergePendingFlag:
        """Merge-pending flag shared with the coordinator."""
        return self.coordinator.flag

    def is_authenticated(self) -> bool:
        """Whether a session token is stored."""
        return self.store.read_token() is not None

    async def start(self) -> None:
        """Subscribe to events and recover an interrupted merge."""
        if not self._unsubscribers:
            self._unsubscribers = [
                self.events.subscribe(SyncEvent.AUTHENTICATED, self._on_authenticated),
                self.events.subscribe(
                    SyncEvent.CONNECTIVITY_CHANGED, self._on_connectivity_changed
                ),
            ]

        if self.is_authenticated() and self.is_online() and self.flag.is_set:
            outcome = await self.coordinator.recover()
            if outcome is not None:
                self.last_login_outcome = outcome

    def stop(self) -> None:
        """Remove all event subscriptions."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    # =========================================================================
    # Event handlers
    # =========================================================================

    async def _on_authenticated(self, payload: Dict[str, Any]) -> None:
        """Run post-login detection, or defer it past a running resolution."""
        try:
            self.last_login_outcome = await self.coordinator.begin_after_login()
        except MergeInProgressError:
            self.coordinator.defer_login()

    async def _on_connectivity_changed(self, payload: Dict[str, Any]) -> None:
        if not payload.get("online") or not self.is_authenticated():
            return
        self.last_background_result = await self.reconcile_background()

    # =========================================================================
    # Background reconciliation
    # =========================================================================

    async def reconcile_background(self) -> BackgroundSyncResult:
        """Push what only exists locally, then sync down.

        Entries without a server identity that the account lacks are pushed
        additively. Settings are pushed when they differ and the account copy
        is not strictly newer. The flag is checked first and re-checked after
        every remote call; if a merge has started the run stops without
        touching the local store. When the settings step fails, the sync-down
        refreshes entries only so unpushed local settings survive.

        Returns:
            BackgroundSyncResult with counts and errors
        """
        result = BackgroundSyncResult()
        if not self.is_authenticated():
            result.skipped_reason = "not authenticated"
            return result
        if self.flag.is_set:
            result.skipped_reason = "merge pending"
            logger.info("Background sync skipped: merge decision pending")
            return result

        generation = self.flag.generation
        try:
            await self._push_entries(result, generation)
            settings_settled = await self._push_settings(result, generation)
        except _Superseded:
            result.skipped_reason = "merge started"
            logger.info("Background sync stopped: a merge started meanwhile")
            return result

        outcome = await self.coordinator.sync_down(
            keep_local_settings=not settings_settled
        )
        result.synced_down = outcome.status == OutcomeStatus.SYNCED
        if outcome.status == OutcomeStatus.FAILED:
            result.add_error(outcome.message)
        elif outcome.status == OutcomeStatus.DISCARDED:
            result.skipped_reason = "merge started"

        logger.debug("Background sync: %s", result.get_summary())
        return result

    def _ensure_current(self, generation: int) -> None:
        if self.flag.is_set or self.flag.generation != generation:
            raise _Superseded()

    async def _push_entries(self, result: BackgroundSyncResult, generation: int) -> None:
        try:
            remote_entries = await self.remote.get_all_completed_entries()
        except RemoteError as e:
            result.add_error(f"Could not read account entries: {e}")
            return
        self._ensure_current(generation)

        comparison = self.detector.compare_entries(
            self.store.read_entries(), remote_entries
        )
        to_push = [
            entry.without_id()
            for entry in comparison.unique_to_local
            if not entry.is_synced
        ]
        if not to_push:
            return

        try:
            await self.remote.apply_merge(entries=to_push)
        except RemoteError as e:
            result.add_error(f"Could not push {len(to_push)} entries: {e}")
            return
        result.entries_pushed = len(to_push)
        logger.info("Pushed %d offline entries", len(to_push))
        self._ensure_current(generation)

    async def _push_settings(
        self, result: BackgroundSyncResult, generation: int
    ) -> bool:
        """Push local settings unless the account copy is strictly newer.

        Returns:
            True if the account copy may now overwrite local settings
        """
        try:
            remote_settings = await self.remote.get_settings()
        except RemoteError as e:
            result.add_error(f"Could not read account settings: {e}")
            return False
        self._ensure_current(generation)

        local = self.store.read_settings()
        relation = self.detector.settings_relation(local, remote_settings)
        if relation not in (Relation.LOCAL_AHEAD, Relation.DIVERGED):
            if relation == Relation.REMOTE_AHEAD:
                logger.debug("Account settings are newer, not pushing")
            return True

        to_push = local if local.last_updated else local.stamped()
        try:
            await self.remote.save_settings(to_push)
        except RemoteError as e:
            result.add_error(f"Could not push settings: {e}")
            return False
        result.settings_pushed = True
        logger.info("Pushed offline settings changes")
        self._ensure_current(generation)
        return True

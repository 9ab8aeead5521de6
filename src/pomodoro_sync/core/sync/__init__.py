"""Reconciliation engine: divergence detection, merge coordination, triggers."""

from .coordinator import (
    CoordinatorOutcome,
    EntriesPolicy,
    MergeCoordinator,
    MergeState,
    OutcomeStatus,
    PendingDecision,
    SettingsPolicy,
    merge_unsynced,
)
from .divergence import (
    DivergenceDetector,
    DivergenceReport,
    EntryComparison,
    Relation,
    unique_entries,
)
from .events import EventBus, SyncEvent
from .merge_flag import MergePendingFlag
from .trigger import BackgroundSyncResult, SyncTrigger

__all__ = [
    "BackgroundSyncResult",
    "CoordinatorOutcome",
    "DivergenceDetector",
    "DivergenceReport",
    "EntriesPolicy",
    "EntryComparison",
    "EventBus",
    "MergeCoordinator",
    "MergePendingFlag",
    "MergeState",
    "OutcomeStatus",
    "PendingDecision",
    "Relation",
    "SettingsPolicy",
    "SyncEvent",
    "SyncTrigger",
    "merge_unsynced",
    "unique_entries",
]

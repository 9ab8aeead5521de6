"""Divergence detection between local and remote copies.

Settings are compared field by field; ``lastUpdated`` only decides which side
is ahead, never whether they differ. Entries are compared by canonical
timestamp: two entries with the same timestamp are the same entry whatever
their server identity. This is simple but has known weak spots (clock skew, two
sessions finishing within the same millisecond).

Everything here is a pure function of the two snapshots.
"""

from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any, Dict, List, Sequence, Set, Union

from ...models import CompletedEntry, Settings, valid_entries
from ...utils.time_utils import parse_timestamp

EntryLike = Union[CompletedEntry, Dict[str, Any]]


class Relation(str, Enum):
    """How a local copy relates to the remote copy."""

    EQUAL = "equal"
    LOCAL_AHEAD = "local-ahead"
    REMOTE_AHEAD = "remote-ahead"
    DIVERGED = "diverged"


@dataclass
class EntryComparison:
    """Result of comparing local and remote entry logs.

    Attributes:
        unique_to_local: Local entries whose timestamp the remote lacks
        unique_to_remote: Remote entries whose timestamp the local log lacks
        local_count: Number of well-formed local entries
        remote_count: Number of well-formed remote entries
    """

    unique_to_local: List[CompletedEntry] = dataclass_field(default_factory=list)
    unique_to_remote: List[CompletedEntry] = dataclass_field(default_factory=list)
    local_count: int = 0
    remote_count: int = 0

    @property
    def relation(self) -> Relation:
        """Classify the entry logs."""
        if self.unique_to_local and self.unique_to_remote:
            return Relation.DIVERGED
        if self.unique_to_local:
            return Relation.LOCAL_AHEAD
        if self.unique_to_remote:
            return Relation.REMOTE_AHEAD
        return Relation.EQUAL


@dataclass
class DivergenceReport:
    """Full comparison of a local and a remote snapshot."""

    settings_differ: bool
    settings_relation: Relation
    entries: EntryComparison

    @property
    def entries_relation(self) -> Relation:
        """Relation of the entry logs."""
        return self.entries.relation

    @property
    def relation(self) -> Relation:
        """Overall relation combining settings and entries."""
        parts = {self.settings_relation, self.entries_relation} - {Relation.EQUAL}
        if not parts:
            return Relation.EQUAL
        if len(parts) == 1:
            return parts.pop()
        return Relation.DIVERGED

    @property
    def needs_decision(self) -> bool:
        """Whether a post-login merge decision has to be made.

        Remote-only entries never need a decision: sync-down brings them in.
        """
        return self.settings_differ or bool(self.entries.unique_to_local)

    def get_summary(self) -> Dict[str, Any]:
        """Get summary of the comparison."""
        return {
            "relation": self.relation.value,
            "settings": self.settings_relation.value,
            "entries": self.entries_relation.value,
            "unique_to_local": len(self.entries.unique_to_local),
            "unique_to_remote": len(self.entries.unique_to_remote),
            "local_count": self.entries.local_count,
            "remote_count": self.entries.remote_count,
        }


class DivergenceDetector:
    """Compares local and remote snapshots."""

    def compare_settings(self, local: Settings, remote: Settings) -> bool:
        """Check whether any mutable settings field differs.

        Args:
            local: Local settings
            remote: Remote settings

        Returns:
            True if at least one of the five mutable fields differs
        """
        return local.merge_fields() != remote.merge_fields()

    def settings_relation(self, local: Settings, remote: Settings) -> Relation:
        """Classify two settings records.

        When both sides carry ``lastUpdated`` the newer one is ahead. A tie or
        a missing stamp cannot be ordered and counts as diverged.
        """
        if not self.compare_settings(local, remote):
            return Relation.EQUAL

        local_stamp = parse_timestamp(local.last_updated)
        remote_stamp = parse_timestamp(remote.last_updated)
        if local_stamp is None or remote_stamp is None or local_stamp == remote_stamp:
            return Relation.DIVERGED
        if local_stamp > remote_stamp:
            return Relation.LOCAL_AHEAD
        return Relation.REMOTE_AHEAD

    def compare_entries(
        self, local: Sequence[EntryLike], remote: Sequence[EntryLike]
    ) -> EntryComparison:
        """Find local entries the remote does not have.

        Malformed entries (missing or mistyped fields, unparseable timestamps)
        are dropped before comparing and never count as divergence. Local
        entries sharing a timestamp are reported once.

        Args:
            local: Local entry log
            remote: Remote entry log

        Returns:
            EntryComparison with unique entries and counts
        """
        local_entries = _identified(local)
        remote_entries = _identified(remote)

        remote_ids = {entry.identity for entry in remote_entries}
        local_ids = {entry.identity for entry in local_entries}

        return EntryComparison(
            unique_to_local=_unique_missing_from(local_entries, remote_ids),
            unique_to_remote=_unique_missing_from(remote_entries, local_ids),
            local_count=len(local_entries),
            remote_count=len(remote_entries),
        )

    def classify(
        self,
        local_settings: Settings,
        remote_settings: Settings,
        local_entries: Sequence[EntryLike],
        remote_entries: Sequence[EntryLike],
    ) -> DivergenceReport:
        """Compare full local and remote snapshots."""
        return DivergenceReport(
            settings_differ=self.compare_settings(local_settings, remote_settings),
            settings_relation=self.settings_relation(local_settings, remote_settings),
            entries=self.compare_entries(local_entries, remote_entries),
        )


def unique_entries(entries: Sequence[EntryLike]) -> List[CompletedEntry]:
    """Well-formed entries, one per canonical timestamp, first occurrence kept."""
    return _unique_missing_from(_identified(entries), set())


def _identified(entries: Sequence[EntryLike]) -> List[CompletedEntry]:
    """Well-formed entries with a parseable timestamp."""
    return [entry for entry in valid_entries(list(entries)) if entry.identity]


def _unique_missing_from(
    entries: List[CompletedEntry], other_ids: Set[Any]
) -> List[CompletedEntry]:
    seen: Set[Any] = set()
    missing: List[CompletedEntry] = []
    for entry in entries:
        identity = entry.identity
        if identity in other_ids or identity in seen:
            continue
        seen.add(identity)
        missing.append(entry)
    return missing

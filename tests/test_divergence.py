"""Tests for divergence detection."""

import pytest

from pomodoro_sync.core.sync import DivergenceDetector, Relation, unique_entries
from pomodoro_sync.models import CompletedEntry, Settings

T1 = "2024-03-01T09:00:00.000Z"
T2 = "2024-03-01T10:00:00.000Z"
T3 = "2024-03-01T11:00:00.000Z"


def _entry(timestamp, entry_id=None):
    return CompletedEntry(timestamp=timestamp, pomodoro_duration=25, id=entry_id)


@pytest.fixture
def detector():
    """Create a divergence detector."""
    return DivergenceDetector()


class TestCompareSettings:
    """Test settings comparison."""

    def test_different_duration(self, detector):
        """Test differing pomodoro durations are detected."""
        local = Settings(pomodoro_duration=25)
        remote = Settings(pomodoro_duration=30)
        assert detector.compare_settings(local, remote) is True

    def test_identical_settings(self, detector):
        """Test identical settings are equal."""
        assert detector.compare_settings(Settings(), Settings()) is False

    def test_last_updated_ignored(self, detector):
        """Test lastUpdated alone does not count as a difference."""
        local = Settings().stamped("2024-03-01T09:00:00.000Z")
        remote = Settings().stamped("2024-03-02T09:00:00.000Z")
        assert detector.compare_settings(local, remote) is False

    def test_boolean_field(self, detector):
        """Test boolean fields take part."""
        assert detector.compare_settings(Settings(), Settings(auto_start_pomodoro=True))


class TestSettingsRelation:
    """Test settings classification."""

    def test_equal(self, detector):
        """Test equal settings."""
        assert detector.settings_relation(Settings(), Settings()) == Relation.EQUAL

    def test_local_newer(self, detector):
        """Test a newer local stamp is local-ahead."""
        local = Settings(pomodoro_duration=30).stamped(T2)
        remote = Settings().stamped(T1)
        assert detector.settings_relation(local, remote) == Relation.LOCAL_AHEAD

    def test_remote_newer(self, detector):
        """Test a newer remote stamp is remote-ahead."""
        local = Settings(pomodoro_duration=30).stamped(T1)
        remote = Settings().stamped(T2)
        assert detector.settings_relation(local, remote) == Relation.REMOTE_AHEAD

    def test_missing_stamp_is_diverged(self, detector):
        """Test an unstamped side cannot be ordered."""
        local = Settings(pomodoro_duration=30)
        remote = Settings().stamped(T1)
        assert detector.settings_relation(local, remote) == Relation.DIVERGED

    def test_tie_is_diverged(self, detector):
        """Test equal stamps with different values are diverged."""
        local = Settings(pomodoro_duration=30).stamped(T1)
        remote = Settings().stamped(T1)
        assert detector.settings_relation(local, remote) == Relation.DIVERGED


class TestCompareEntries:
    """Test entry comparison."""

    def test_unique_to_local(self, detector):
        """Test [T1, T2] local against [T1] remote gives [T2]."""
        result = detector.compare_entries([_entry(T1), _entry(T2)], [_entry(T1, "r1")])
        assert [e.timestamp for e in result.unique_to_local] == [T2]
        assert result.local_count == 2
        assert result.remote_count == 1
        assert result.relation == Relation.LOCAL_AHEAD

    def test_identity_ignores_server_id(self, detector):
        """Test entries match by timestamp whatever their ids."""
        result = detector.compare_entries([_entry(T1, "a")], [_entry(T1, "b")])
        assert result.unique_to_local == []
        assert result.relation == Relation.EQUAL

    def test_identity_ignores_timestamp_spelling(self, detector):
        """Test equivalent timestamp spellings match."""
        result = detector.compare_entries(
            [_entry("2024-03-01T09:00:00Z")], [_entry(T1)]
        )
        assert result.unique_to_local == []

    def test_remote_ahead_and_diverged(self, detector):
        """Test remote-only and two-sided differences."""
        assert (
            detector.compare_entries([_entry(T1)], [_entry(T1), _entry(T2)]).relation
            == Relation.REMOTE_AHEAD
        )
        assert (
            detector.compare_entries([_entry(T1), _entry(T3)], [_entry(T2)]).relation
            == Relation.DIVERGED
        )

    def test_malformed_entries_ignored(self, detector):
        """Test malformed entries never count as divergence."""
        local = [
            {"timestamp": T1, "pomodoroDuration": 25},
            {"timestamp": "not a time", "pomodoroDuration": 25},
            {"timestamp": T2},
            {"pomodoroDuration": 25},
        ]
        result = detector.compare_entries(local, [{"timestamp": T1, "pomodoroDuration": 25}])
        assert result.unique_to_local == []
        assert result.local_count == 1

    def test_duplicate_local_reported_once(self, detector):
        """Test local duplicates of one timestamp are reported once."""
        result = detector.compare_entries([_entry(T2), _entry(T2)], [])
        assert len(result.unique_to_local) == 1

    def test_empty_logs(self, detector):
        """Test two empty logs are equal."""
        result = detector.compare_entries([], [])
        assert result.relation == Relation.EQUAL
        assert result.local_count == result.remote_count == 0

    def test_unique_entries_helper(self):
        """Test deduplication keeps the first occurrence."""
        entries = unique_entries([_entry(T1, "a"), _entry(T1, "b"), _entry(T2)])
        assert [(e.timestamp, e.id) for e in entries] == [(T1, "a"), (T2, None)]


class TestClassify:
    """Test full snapshot classification."""

    def test_equal(self, detector):
        """Test identical snapshots need no decision."""
        report = detector.classify(Settings(), Settings(), [_entry(T1)], [_entry(T1)])
        assert report.relation == Relation.EQUAL
        assert report.needs_decision is False

    def test_settings_only(self, detector):
        """Test differing settings need a decision."""
        report = detector.classify(Settings(pomodoro_duration=30), Settings(), [], [])
        assert report.settings_differ
        assert report.needs_decision
        assert report.relation == Relation.DIVERGED

    def test_remote_only_entries_need_no_decision(self, detector):
        """Test entries only on the remote never need a decision."""
        report = detector.classify(Settings(), Settings(), [], [_entry(T1)])
        assert report.relation == Relation.REMOTE_AHEAD
        assert report.needs_decision is False

    def test_mixed_relations_diverge(self, detector):
        """Test local-ahead entries with remote-ahead settings are diverged."""
        report = detector.classify(
            Settings(pomodoro_duration=30).stamped(T1),
            Settings().stamped(T2),
            [_entry(T3)],
            [],
        )
        assert report.settings_relation == Relation.REMOTE_AHEAD
        assert report.entries_relation == Relation.LOCAL_AHEAD
        assert report.relation == Relation.DIVERGED

    def test_summary(self, detector):
        """Test report summary contents."""
        report = detector.classify(Settings(), Settings(), [_entry(T1), _entry(T2)], [_entry(T1)])
        summary = report.get_summary()
        assert summary["relation"] == "local-ahead"
        assert summary["unique_to_local"] == 1
        assert summary["local_count"] == 2

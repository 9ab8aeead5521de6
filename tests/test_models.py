"""Tests for data models and time helpers."""

import pytest
from pydantic import ValidationError

from pomodoro_sync.exceptions import BackupValidationError
from pomodoro_sync.models import (
    BackupDocument,
    CompletedEntry,
    MergeResult,
    Settings,
    StatsSummary,
    SyncSnapshot,
    valid_entries,
)
from pomodoro_sync.utils.time_utils import (
    canonical_timestamp,
    duration_to_seconds,
    format_duration,
    now_iso,
    parse_timestamp,
)

T1 = "2024-03-01T09:00:00.000Z"


def _backup(**overrides):
    document = {
        "version": "1.0.0",
        "timestamp": "2024-03-01T12:00:00.000Z",
        "settings": {
            "pomodoroDuration": 25,
            "shortBreakDuration": 5,
            "longBreakDuration": 15,
            "autoStartBreak": False,
            "autoStartPomodoro": False,
        },
        "stats": {"completed": [{"timestamp": T1, "pomodoroDuration": 25}]},
    }
    document.update(overrides)
    return document


class TestTimeUtils:
    """Test timestamp and duration helpers."""

    def test_now_iso_is_canonical(self):
        """Test generated timestamps use the millisecond Z form."""
        value = now_iso()
        assert value.endswith("Z")
        assert canonical_timestamp(value) == value

    def test_canonical_timestamp_equivalent_forms(self):
        """Test equivalent spellings map to one canonical string."""
        assert canonical_timestamp("2024-03-01T09:00:00Z") == T1
        assert canonical_timestamp("2024-03-01T10:00:00+01:00") == T1
        assert canonical_timestamp("2024-03-01T09:00:00.000123Z") == T1

    def test_parse_timestamp_invalid(self):
        """Test unparseable values give None."""
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp("") is None
        assert parse_timestamp(12345) is None

    def test_duration_to_seconds(self):
        """Test minutes convert to seconds, including sub-minute values."""
        assert duration_to_seconds(25) == 1500
        assert duration_to_seconds(0.05) == 3
        assert duration_to_seconds(0.001) == 1

    def test_duration_to_seconds_rejects_non_positive(self):
        """Test zero durations are rejected."""
        with pytest.raises(ValueError):
            duration_to_seconds(0)

    def test_format_duration(self):
        """Test hours and minutes formatting."""
        assert format_duration(45) == "45m"
        assert format_duration(125) == "2h 5m"
        assert format_duration(0) == "0m"


class TestSettings:
    """Test Settings model."""

    def test_defaults(self):
        """Test default settings values."""
        settings = Settings()
        assert settings.pomodoro_duration == 25
        assert settings.short_break_duration == 5
        assert settings.long_break_duration == 15
        assert settings.auto_start_break is False
        assert settings.auto_start_pomodoro is False
        assert settings.last_updated is None

    def test_wire_names(self):
        """Test camelCase input and output."""
        settings = Settings.model_validate({"pomodoroDuration": 30, "autoStartBreak": True})
        wire = settings.to_wire()
        assert wire["pomodoroDuration"] == 30
        assert wire["autoStartBreak"] is True
        assert "lastUpdated" not in wire

    def test_rejects_non_positive_duration(self):
        """Test durations must be positive."""
        with pytest.raises(ValidationError):
            Settings(pomodoro_duration=0)

    def test_rejects_boolean_duration(self):
        """Test booleans are not accepted as durations."""
        with pytest.raises(ValidationError):
            Settings.model_validate({"pomodoroDuration": True})

    def test_stamped(self):
        """Test stamping sets lastUpdated on a copy."""
        settings = Settings()
        stamped = settings.stamped("2024-03-01T10:00:00.000Z")
        assert stamped.last_updated == "2024-03-01T10:00:00.000Z"
        assert settings.last_updated is None

    def test_merge_fields_ignore_last_updated(self):
        """Test lastUpdated is not part of the merge fields."""
        assert Settings().merge_fields() == Settings().stamped().merge_fields()

    def test_seconds_properties(self):
        """Test second conversions."""
        settings = Settings(pomodoro_duration=0.1, short_break_duration=1)
        assert settings.pomodoro_seconds == 6
        assert settings.short_break_seconds == 60
        assert settings.long_break_seconds == 900


class TestCompletedEntry:
    """Test CompletedEntry model."""

    def test_accepts_mongo_style_id(self):
        """Test ``_id`` and numeric ids are accepted as strings."""
        entry = CompletedEntry.model_validate(
            {"timestamp": T1, "pomodoroDuration": 25, "_id": 42}
        )
        assert entry.id == "42"
        assert entry.is_synced

    def test_identity_is_canonical_timestamp(self):
        """Test identity ignores the server id and timestamp spelling."""
        a = CompletedEntry(timestamp="2024-03-01T09:00:00Z", pomodoro_duration=25, id="x")
        b = CompletedEntry(timestamp=T1, pomodoro_duration=25)
        assert a.identity == b.identity == T1

    def test_new_entry(self):
        """Test creating an entry for a finished session."""
        entry = CompletedEntry.new(25)
        assert entry.id is None
        assert entry.identity == entry.timestamp

    def test_to_wire_without_id(self):
        """Test serialization can leave out the id."""
        entry = CompletedEntry(timestamp=T1, pomodoro_duration=25, id="abc")
        assert entry.to_wire() == {"timestamp": T1, "pomodoroDuration": 25, "id": "abc"}
        assert entry.to_wire(include_id=False) == {"timestamp": T1, "pomodoroDuration": 25}

    def test_valid_entries_drops_malformed(self):
        """Test malformed items are dropped silently."""
        items = [
            {"timestamp": T1, "pomodoroDuration": 25},
            {"timestamp": T1},
            {"timestamp": 5, "pomodoroDuration": 25},
            {"timestamp": T1, "pomodoroDuration": "25"},
            {"timestamp": T1, "pomodoroDuration": True},
            "garbage",
            None,
        ]
        entries = valid_entries(items)
        assert len(entries) == 1
        assert entries[0].timestamp == T1

    def test_valid_entries_non_list(self):
        """Test non-list input yields no entries."""
        assert valid_entries({"timestamp": T1}) == []
        assert valid_entries(None) == []


class TestSnapshots:
    """Test remote response models."""

    def test_snapshot_accepts_wrapped_entries(self):
        """Test ``{"completed": [...]}`` entry payloads."""
        snapshot = SyncSnapshot.model_validate(
            {
                "settings": {"pomodoroDuration": 30},
                "entries": {"completed": [{"timestamp": T1, "pomodoroDuration": 25}]},
            }
        )
        assert snapshot.settings.pomodoro_duration == 30
        assert len(snapshot.entries) == 1

    def test_merge_result_filters_bad_entries(self):
        """Test malformed merge result entries are dropped."""
        result = MergeResult.model_validate(
            {"entries": [{"timestamp": T1, "pomodoroDuration": 25}, {"bad": 1}]}
        )
        assert result.settings is None
        assert len(result.entries) == 1

    def test_stats_summary_formatting(self):
        """Test total focus time formatting."""
        summary = StatsSummary(count=3, total_duration=75, source="local")
        assert summary.total_duration_formatted == "1h 15m"


class TestBackupDocument:
    """Test strict backup validation."""

    def test_valid_document(self):
        """Test a complete document parses."""
        document = BackupDocument.parse_strict(_backup())
        assert document.version == "1.0.0"
        assert document.entries[0].pomodoro_duration == 25

    def test_empty_entries_are_valid(self):
        """Test a backup with no sessions is valid."""
        document = BackupDocument.parse_strict(_backup(stats={"completed": []}))
        assert document.entries == []

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            [],
            "backup",
        ],
    )
    def test_rejects_non_objects(self, raw):
        """Test non-object documents are rejected."""
        with pytest.raises(BackupValidationError):
            BackupDocument.parse_strict(raw)

    def test_rejects_missing_settings_field(self):
        """Test every settings field must be present."""
        raw = _backup()
        del raw["settings"]["autoStartPomodoro"]
        with pytest.raises(BackupValidationError, match="autoStartPomodoro"):
            BackupDocument.parse_strict(raw)

    def test_rejects_string_duration(self):
        """Test numbers given as strings are rejected."""
        raw = _backup()
        raw["settings"]["pomodoroDuration"] = "25"
        with pytest.raises(BackupValidationError):
            BackupDocument.parse_strict(raw)

    def test_rejects_non_boolean_flag(self):
        """Test booleans given as numbers are rejected."""
        raw = _backup()
        raw["settings"]["autoStartBreak"] = 1
        with pytest.raises(BackupValidationError):
            BackupDocument.parse_strict(raw)

    def test_rejects_bad_entry(self):
        """Test a single malformed entry invalidates the document."""
        raw = _backup(stats={"completed": [{"timestamp": T1}]})
        with pytest.raises(BackupValidationError):
            BackupDocument.parse_strict(raw)

    def test_rejects_missing_version(self):
        """Test the version tag is required."""
        raw = _backup()
        del raw["version"]
        with pytest.raises(BackupValidationError, match="version"):
            BackupDocument.parse_strict(raw)

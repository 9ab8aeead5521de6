"""Data models for the pomodoro sync engine.

All models accept and emit the camelCase field names used by the remote store
and by backup documents (``pomodoroDuration``), while Python code uses the
snake_case attribute names.
"""

import math
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from ..exceptions import BackupValidationError
from ..utils.time_utils import (
    canonical_timestamp,
    duration_to_seconds,
    format_duration,
    now_iso,
)

BACKUP_VERSION = "1.0.0"


def is_number(value: Any) -> bool:
    """Check for a finite int or float, excluding booleans."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _reject_bool(value: Any) -> Any:
    """Refuse booleans where a number is expected (bool is an int subclass)."""
    if isinstance(value, bool):
        raise ValueError("must be a number, not a boolean")
    return value


class Settings(BaseModel):
    """Timer settings, one record per account and per local installation."""

    MERGE_FIELDS: ClassVar[Tuple[str, ...]] = (
        "pomodoro_duration",
        "short_break_duration",
        "long_break_duration",
        "auto_start_break",
        "auto_start_pomodoro",
    )
    WIRE_FIELDS: ClassVar[Tuple[str, ...]] = (
        "pomodoroDuration",
        "shortBreakDuration",
        "longBreakDuration",
        "autoStartBreak",
        "autoStartPomodoro",
    )

    pomodoro_duration: float = Field(
        default=25.0, alias="pomodoroDuration", gt=0, allow_inf_nan=False
    )
    short_break_duration: float = Field(
        default=5.0, alias="shortBreakDuration", gt=0, allow_inf_nan=False
    )
    long_break_duration: float = Field(
        default=15.0, alias="longBreakDuration", gt=0, allow_inf_nan=False
    )
    auto_start_break: bool = Field(default=False, alias="autoStartBreak")
    auto_start_pomodoro: bool = Field(default=False, alias="autoStartPomodoro")
    last_updated: Optional[str] = Field(default=None, alias="lastUpdated")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator(
        "pomodoro_duration",
        "short_break_duration",
        "long_break_duration",
        mode="before",
    )
    @classmethod
    def validate_duration_type(cls, v: Any) -> Any:
        """Reject booleans passed as durations."""
        return _reject_bool(v)

    def merge_fields(self) -> Dict[str, Any]:
        """Get the mutable fields that take part in divergence checks."""
        return {name: getattr(self, name) for name in self.MERGE_FIELDS}

    def stamped(self, timestamp: Optional[str] = None) -> "Settings":
        """Return a copy carrying a fresh ``lastUpdated`` stamp."""
        return self.model_copy(update={"last_updated": timestamp or now_iso()})

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with wire field names."""
        return self.model_dump(by_alias=True, exclude_none=True)

    @property
    def pomodoro_seconds(self) -> int:
        """Pomodoro length in seconds."""
        return duration_to_seconds(self.pomodoro_duration)

    @property
    def short_break_seconds(self) -> int:
        """Short break length in seconds."""
        return duration_to_seconds(self.short_break_duration)

    @property
    def long_break_seconds(self) -> int:
        """Long break length in seconds."""
        return duration_to_seconds(self.long_break_duration)


class CompletedEntry(BaseModel):
    """One completed work session.

    Entries are immutable. ``id`` is assigned by the remote store once the entry
    has been persisted there; deduplication never looks at it and uses the
    canonical ``timestamp`` instead.
    """

    timestamp: str
    pomodoro_duration: float = Field(alias="pomodoroDuration", allow_inf_nan=False)
    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("id", "_id"))

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    @field_validator("pomodoro_duration", mode="before")
    @classmethod
    def validate_duration_type(cls, v: Any) -> Any:
        """Reject booleans passed as durations."""
        return _reject_bool(v)

    @field_validator("id", mode="before")
    @classmethod
    def validate_id(cls, v: Any) -> Optional[str]:
        """Accept numeric server identities as strings."""
        if v is None:
            return None
        return str(v)

    @classmethod
    def new(
        cls, pomodoro_duration: float, timestamp: Optional[str] = None
    ) -> "CompletedEntry":
        """Create an entry for a session that just finished."""
        return cls(timestamp=timestamp or now_iso(), pomodoro_duration=pomodoro_duration)

    @property
    def identity(self) -> Optional[str]:
        """Canonical timestamp used as the deduplication key."""
        return canonical_timestamp(self.timestamp)

    @property
    def is_synced(self) -> bool:
        """Whether the remote store has assigned this entry an identity."""
        return self.id is not None

    def without_id(self) -> "CompletedEntry":
        """Return a copy without the server identity."""
        return self.model_copy(update={"id": None})

    def to_wire(self, include_id: bool = True) -> Dict[str, Any]:
        """Serialize with wire field names."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        if not include_id:
            data.pop("id", None)
        return data


def valid_entries(items: Any) -> List[CompletedEntry]:
    """Keep only well-formed entries, silently dropping the rest.

    Args:
        items: A list of CompletedEntry objects and/or raw dicts

    Returns:
        Entries that have a string timestamp and a numeric duration
    """
    if not isinstance(items, (list, tuple)):
        return []

    entries: List[CompletedEntry] = []
    for item in items:
        if isinstance(item, CompletedEntry):
            entries.append(item)
            continue
        if not isinstance(item, dict):
            continue
        duration = item.get("pomodoroDuration", item.get("pomodoro_duration"))
        if not isinstance(item.get("timestamp"), str) or not is_number(duration):
            continue
        try:
            entries.append(CompletedEntry.model_validate(item))
        except ValidationError:
            continue
    return entries


def _unwrap_completed(value: Any) -> Any:
    """Accept both ``[...]`` and ``{"completed": [...]}`` entry payloads."""
    if isinstance(value, dict) and "completed" in value:
        return value["completed"]
    return value


class SyncSnapshot(BaseModel):
    """Combined remote read of settings and entries."""

    settings: Settings = Field(default_factory=Settings)
    entries: List[CompletedEntry] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("entries", mode="before")
    @classmethod
    def validate_entries(cls, v: Any) -> List[CompletedEntry]:
        """Drop malformed remote entries."""
        return valid_entries(_unwrap_completed(v))


class MergeResult(BaseModel):
    """Remote state returned after an ``applyMerge`` call."""

    settings: Optional[Settings] = None
    entries: List[CompletedEntry] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("entries", mode="before")
    @classmethod
    def validate_entries(cls, v: Any) -> List[CompletedEntry]:
        """Drop malformed remote entries."""
        return valid_entries(_unwrap_completed(v))


class BackupStats(BaseModel):
    """Entry section of a backup document."""

    completed: List[CompletedEntry]

    model_config = ConfigDict(extra="ignore")


class BackupDocument(BaseModel):
    """Portable snapshot of local settings and entries."""

    version: str
    timestamp: str
    settings: Settings
    stats: BackupStats

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @classmethod
    def parse_strict(cls, raw: Any) -> "BackupDocument":
        """Validate a raw document field by field.

        Every field must be present and carry the right JSON type; numbers
        given as strings or booleans given as numbers are rejected.

        Args:
            raw: Decoded JSON value

        Returns:
            The validated document

        Raises:
            BackupValidationError: If anything is missing or mistyped
        """
        if not isinstance(raw, dict):
            raise BackupValidationError("Backup must be a JSON object")

        settings = raw.get("settings")
        if isinstance(settings, dict):
            missing = [key for key in Settings.WIRE_FIELDS if key not in settings]
            if missing:
                raise BackupValidationError(
                    f"Backup settings missing fields: {', '.join(missing)}"
                )

        try:
            return cls.model_validate(raw, strict=True)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            raise BackupValidationError(
                f"Invalid backup field '{location}': {first['msg']}"
            ) from e

    @property
    def entries(self) -> List[CompletedEntry]:
        """Completed entries contained in the backup."""
        return self.stats.completed

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with wire field names."""
        return self.model_dump(by_alias=True, exclude_none=True)


class BackupInfo(BaseModel):
    """Display summary of a backup document."""

    date: str
    pomodoro_count: int
    total_duration: float
    version: str


class StatsSummary(BaseModel):
    """Completed-session statistics as shown to the user."""

    count: int
    total_duration: float
    source: str
    notice: Optional[str] = None

    @property
    def total_duration_formatted(self) -> str:
        """Total focus time as ``Xh Ym``."""
        return format_duration(self.total_duration)

"""Timestamp and duration helpers."""

from datetime import datetime, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(moment: datetime) -> str:
    """Render a datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ``.

    This is the shape JavaScript's ``Date.toISOString()`` produces, which is
    what the remote store and older local data use. Naive datetimes are
    treated as UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return f"{moment:%Y-%m-%dT%H:%M:%S}.{moment.microsecond // 1000:03d}Z"


def now_iso() -> str:
    """Return the current time in canonical ISO form."""
    return to_iso(utc_now())


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string into an aware datetime.

    Args:
        value: Candidate timestamp

    Returns:
        Parsed datetime, or None if value is not a parseable ISO string
    """
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def canonical_timestamp(value: Any) -> Optional[str]:
    """Normalize a timestamp string for identity comparison.

    ``2024-01-01T10:00:00Z`` and ``2024-01-01T10:00:00.000Z`` name the same
    instant and map to the same canonical string. Precision below one
    millisecond is dropped.
    """
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    return to_iso(parsed)


def duration_to_seconds(minutes: float) -> int:
    """Convert a settings duration to whole seconds.

    Durations are stored in minutes. Values below one minute come from older
    clients that stored sub-minute test durations as a fraction of a minute,
    so ``0.05`` is three seconds. The result is never below one second.
    """
    if minutes <= 0:
        raise ValueError(f"Duration must be positive, got {minutes}")
    return max(1, int(round(minutes * 60)))


def format_duration(minutes: float) -> str:
    """Format a number of minutes as ``Xh Ym`` or ``Ym``."""
    total = int(minutes)
    hours, mins = divmod(total, 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"

"""Shared helpers: logging setup and timestamp handling."""

from .logging_config import configure_third_party_loggers, setup_logging
from .time_utils import (
    canonical_timestamp,
    duration_to_seconds,
    format_duration,
    now_iso,
    parse_timestamp,
    to_iso,
    utc_now,
)

__all__ = [
    "setup_logging",
    "configure_third_party_loggers",
    "canonical_timestamp",
    "duration_to_seconds",
    "format_duration",
    "now_iso",
    "parse_timestamp",
    "to_iso",
    "utc_now",
]

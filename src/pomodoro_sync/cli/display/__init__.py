"""CLI display and formatting utilities."""

from .formatters import (
    console,
    display_background_result,
    display_backup_info,
    display_notice,
    display_outcome,
    display_pending,
    display_settings,
    display_settings_result,
    display_stats,
    display_status,
)

__all__ = [
    "console",
    "display_background_result",
    "display_backup_info",
    "display_notice",
    "display_outcome",
    "display_pending",
    "display_settings",
    "display_settings_result",
    "display_stats",
    "display_status",
]

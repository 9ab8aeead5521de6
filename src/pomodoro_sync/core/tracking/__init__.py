"""Services the user-facing surface calls into."""

from .auth_service import AuthService
from .connectivity import ConnectivityMonitor
from .settings_service import SettingsResult, SettingsService
from .stats_service import RecordResult, StatsService

__all__ = [
    "AuthService",
    "ConnectivityMonitor",
    "RecordResult",
    "SettingsResult",
    "SettingsService",
    "StatsService",
]

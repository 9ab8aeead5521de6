"""CLI command modules."""

from .auth import login, logout, register, status
from .backup import backup
from .settings import settings
from .stats import record, stats
from .sync import merge, sync_command

__all__ = [
    "backup",
    "login",
    "logout",
    "merge",
    "record",
    "register",
    "settings",
    "stats",
    "status",
    "sync_command",
]

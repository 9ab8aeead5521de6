"""Pomodoro Sync.

Local-first settings and session-log synchronization for a pomodoro timer,
with post-login divergence detection and explicit merge decisions.
"""

__version__ = "1.0.0"

from .config import Config
from .core.app import PomodoroSyncApp
from .models import BackupDocument, CompletedEntry, Settings

__all__ = [
    "BackupDocument",
    "CompletedEntry",
    "Config",
    "PomodoroSyncApp",
    "Settings",
]

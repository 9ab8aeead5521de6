"""Configuration management for the pomodoro sync engine."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file from config directory or project root
_config_env = Path(__file__).parent.parent.parent / "config" / ".env"
if _config_env.exists():
    load_dotenv(_config_env)
else:
    load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:5000/api"


def _optional_float(raw: Optional[str]) -> Optional[float]:
    """Parse an optional positive float, treating blanks and junk as unset."""
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric value %r, using no limit", raw)
        return None
    return value if value > 0 else None


class Config:
    """Application configuration."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        # Remote account store
        self.api_url = os.getenv("POMODORO_SYNC_API_URL", DEFAULT_API_URL).rstrip("/")

        # No timeout unless configured; a hung call blocks only its own flow
        self.request_timeout = _optional_float(
            os.getenv("POMODORO_SYNC_REQUEST_TIMEOUT")
        )

        # Local store
        default_db_path = str(Path.home() / ".pomodoro-sync" / "store.db")
        self.database_path = Path(
            os.getenv("POMODORO_SYNC_DATABASE_PATH", default_db_path)
        ).expanduser()

        # Manual export target
        self.backup_directory = Path(
            os.getenv(
                "POMODORO_SYNC_BACKUP_DIRECTORY", str(Path.home() / "Documents")
            )
        ).expanduser()

        log_file = os.getenv("POMODORO_SYNC_LOG_FILE")
        self.log_file = Path(log_file).expanduser() if log_file else None

        self._ensure_directories()

    def _ensure_directories(self) -> None:
        """Ensure required directories exist."""
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


def get_config() -> Config:
    """Get application configuration."""
    return Config()

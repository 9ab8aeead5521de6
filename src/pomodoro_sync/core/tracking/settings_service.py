"""Reading and editing timer settings."""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from pydantic import ValidationError

from ...database import LocalStore
from ...exceptions import PomodoroSyncError, RemoteError, ValidationFailure
from ...models import Settings
from ..remote import RemoteClient
from ..sync.merge_flag import MergePendingFlag

logger = logging.getLogger(__name__)


@dataclass
class SettingsResult:
    """Settings as shown to the user, with where they came from."""

    settings: Settings
    source: str
    synced: bool = False
    notice: Optional[str] = None


class SettingsService:
    """Loads and saves settings, local first."""

    def __init__(
        self,
        store: LocalStore,
        remote: RemoteClient,
        flag: MergePendingFlag,
        is_online: Callable[[], bool] = lambda: True,
    ) -> None:
        self.store = store
        self.remote = remote
        self.flag = flag
        self.is_online = is_online

    def _can_reach_account(self) -> bool:
        return self.store.read_token() is not None and self.is_online()

    async def load(self) -> SettingsResult:
        """Load settings from the account when possible, else locally."""
        if not self._can_reach_account():
            return SettingsResult(self.store.read_settings(), source="local")

        try:
            settings = await self.remote.get_settings()
        except RemoteError as e:
            logger.warning("Failed to load account settings: %s", e)
            return SettingsResult(
                self.store.read_settings(),
                source="local",
                notice="Failed to load settings from your account, showing local settings",
            )
        return SettingsResult(settings, source="remote", synced=True)

    async def save(self, **changes: Any) -> SettingsResult:
        """Apply changes locally, then push them when the account is reachable.

        Args:
            **changes: Settings fields by attribute name; None values are ignored

        Returns:
            SettingsResult with the saved settings

        Raises:
            ValidationFailure: If a field is unknown or a value is invalid
        """
        updates = {key: value for key, value in changes.items() if value is not None}
        unknown = sorted(set(updates) - set(Settings.MERGE_FIELDS))
        if unknown:
            raise ValidationFailure(f"Unknown settings: {', '.join(unknown)}")

        current = self.store.read_settings()
        try:
            updated = Settings.model_validate({**current.model_dump(), **updates})
        except ValidationError as e:
            raise ValidationFailure(f"Invalid settings: {e}") from e

        updated = updated.stamped()
        if not self.store.write_settings(updated):
            raise PomodoroSyncError("Could not save settings locally")
        logger.info("Settings saved locally")

        if not self._can_reach_account():
            return SettingsResult(updated, source="local")
        if self.flag.is_set:
            return SettingsResult(
                updated,
                source="local",
                notice="Saved locally; a merge decision is pending",
            )

        try:
            stored = await self.remote.save_settings(updated)
        except RemoteError as e:
            logger.warning("Failed to save account settings: %s", e)
            return SettingsResult(
                updated,
                source="local",
                notice="Saved locally; will sync when the connection returns",
            )
        return SettingsResult(stored, source="remote", synced=True)

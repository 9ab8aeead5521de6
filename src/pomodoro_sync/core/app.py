"""Application facade wiring the sync engine together."""

import logging
from typing import Optional

from ..config import Config, get_config
from ..database import LocalStore
from .backup import BackupCodec
from .remote import HttpRemoteClient, RemoteClient
from .sync import (
    DivergenceDetector,
    EventBus,
    MergeCoordinator,
    MergePendingFlag,
    SyncTrigger,
)
from .tracking import AuthService, ConnectivityMonitor, SettingsService, StatsService

logger = logging.getLogger(__name__)


class PomodoroSyncApp:
    """Main application class."""

    def __init__(
        self,
        config: Optional[Config] = None,
        remote: Optional[RemoteClient] = None,
        store: Optional[LocalStore] = None,
        online: bool = True,
    ) -> None:
        """Initialize application.

        Args:
            config: Configuration (default: from environment)
            remote: Remote client (default: HTTP client for ``config.api_url``)
            store: Local store (default: SQLite file at ``config.database_path``)
            online: Initial connectivity state
        """
        self.config = config or get_config()
        self.store = store or LocalStore(self.config.database_path)
        self.remote = remote or HttpRemoteClient(
            self.config.api_url,
            token_provider=self.store.read_token,
            timeout=self.config.request_timeout,
        )

        self.events = EventBus()
        self.connectivity = ConnectivityMonitor(self.events, online=online)
        self.flag = MergePendingFlag(self.store)
        self.coordinator = MergeCoordinator(
            self.store, self.remote, self.flag, self.events, DivergenceDetector()
        )
        self.trigger = SyncTrigger(
            self.store,
            self.remote,
            self.coordinator,
            self.events,
            is_online=self.connectivity.is_online,
        )

        self.auth = AuthService(self.store, self.remote, self.events)
        self.settings = SettingsService(
            self.store, self.remote, self.flag, self.connectivity.is_online
        )
        self.stats = StatsService(
            self.store, self.remote, self.flag, self.connectivity.is_online
        )
        self.backup = BackupCodec(self.store, self.remote)

    async def start(self) -> None:
        """Subscribe the sync engine and recover an interrupted merge."""
        await self.trigger.start()
        logger.debug("Application started (online: %s)", self.connectivity.online)

    def close(self) -> None:
        """Unsubscribe handlers and release the local store."""
        self.trigger.stop()
        self.store.close()

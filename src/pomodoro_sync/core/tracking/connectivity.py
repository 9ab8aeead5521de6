"""Connectivity state."""

import logging

from ..sync.events import EventBus, SyncEvent

logger = logging.getLogger(__name__)


class ConnectivityMonitor:
    """Tracks whether the remote is reachable and announces transitions."""

    def __init__(self, events: EventBus, online: bool = True) -> None:
        self.events = events
        self._online = online

    @property
    def online(self) -> bool:
        """Current connectivity state."""
        return self._online

    def is_online(self) -> bool:
        """Callable form of ``online`` for collaborators that poll."""
        return self._online

    async def set_online(self, online: bool) -> None:
        """Record a connectivity change.

        ``connectivity-changed`` is published only on an actual transition.
        """
        if online == self._online:
            return
        self._online = online
        logger.info("Connectivity changed: %s", "online" if online else "offline")
        await self.events.publish(SyncEvent.CONNECTIVITY_CHANGED, {"online": online})

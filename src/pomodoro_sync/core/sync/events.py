"""In-process event bus for sync notifications.

Collaborators subscribe to explicit events instead of polling shared state.
Handlers may be plain callables or coroutine functions; ``publish`` awaits
them in subscription order so the publisher knows every reaction has run.
"""

import inspect
import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

Payload = Dict[str, Any]
Handler = Callable[[Payload], Union[None, Awaitable[None]]]


class SyncEvent(str, Enum):
    """Events published by the sync engine."""

    AUTHENTICATED = "authenticated"
    LOGGED_OUT = "logged-out"
    CONNECTIVITY_CHANGED = "connectivity-changed"
    MERGE_PENDING = "merge-pending"
    MERGE_RESOLVED = "merge-resolved"
    DATA_REFRESHED = "data-refreshed"


class EventBus:
    """Topic-based publish/subscribe."""

    def __init__(self) -> None:
        self._subscribers: Dict[SyncEvent, List[Handler]] = defaultdict(list)

    def subscribe(self, event: SyncEvent, handler: Handler) -> Callable[[], None]:
        """Subscribe a handler to an event.

        Returns:
            A callable that removes the subscription
        """
        self._subscribers[event].append(handler)
        return lambda: self.unsubscribe(event, handler)

    def unsubscribe(self, event: SyncEvent, handler: Handler) -> None:
        """Remove a handler; unknown handlers are ignored."""
        handlers = self._subscribers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def subscriber_count(self, event: SyncEvent) -> int:
        """Number of handlers subscribed to an event."""
        return len(self._subscribers.get(event, []))

    async def publish(self, event: SyncEvent, payload: Optional[Payload] = None) -> None:
        """Deliver an event to every subscriber.

        A failing handler is logged and does not stop delivery to the others.
        """
        payload = payload or {}
        for handler in list(self._subscribers.get(event, [])):
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Handler for '%s' event failed", event.value)

"""Account login state."""

import logging
from typing import Any, Dict

from ...database import LocalStore
from ...exceptions import PomodoroSyncError
from ..remote import RemoteClient
from ..sync.events import EventBus, SyncEvent

logger = logging.getLogger(__name__)


class AuthService:
    """Logs in and out and announces authentication to the sync engine."""

    def __init__(self, store: LocalStore, remote: RemoteClient, events: EventBus) -> None:
        """Initialize auth service.

        Args:
            store: Local store holding the session token
            remote: Remote account client
            events: Bus on which ``authenticated`` and ``logged-out`` are published
        """
        self.store = store
        self.remote = remote
        self.events = events

    @property
    def is_authenticated(self) -> bool:
        """Whether a session token is stored."""
        return self.store.read_token() is not None

    async def login(self, email: str, password: str) -> None:
        """Authenticate and start the post-login sync flow.

        Raises:
            RemoteError: If the remote rejects the credentials or is unreachable
            PomodoroSyncError: If the token could not be stored
        """
        token = await self.remote.login(email, password)
        if not self.store.write_token(token):
            raise PomodoroSyncError("Could not store the session token")
        logger.info("Logged in as %s", email)
        await self.events.publish(SyncEvent.AUTHENTICATED, {"email": email})

    async def register(self, email: str, password: str) -> Dict[str, Any]:
        """Create an account, then log into it."""
        result = await self.remote.register(email, password)
        logger.info("Registered account %s", email)
        await self.login(email, password)
        return result

    async def logout(self) -> None:
        """Forget the session token.

        Local data and a pending merge flag are kept; the next login
        re-runs detection.
        """
        self.store.clear_token()
        logger.info("Logged out")
        await self.events.publish(SyncEvent.LOGGED_OUT)

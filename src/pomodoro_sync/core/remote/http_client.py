"""HTTP implementation of the remote client using requests.

requests is blocking, so each call runs in the event loop's default executor.
The loop keeps scheduling other flows while a request is in flight.
"""

import asyncio
import functools
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Type, TypeVar, Union

import requests
from pydantic import BaseModel, ValidationError

from ...exceptions import (
    AuthenticationError,
    BackupValidationError,
    RemoteRequestError,
    TransientNetworkFailure,
)
from ...models import (
    BackupDocument,
    CompletedEntry,
    MergeResult,
    Settings,
    SyncSnapshot,
    valid_entries,
)
from .client import RemoteClient

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class HttpRemoteClient(RemoteClient):
    """Remote client talking to the account REST API."""

    def __init__(
        self,
        base_url: str,
        token_provider: Callable[[], Optional[str]],
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialize HTTP remote client.

        Args:
            base_url: API root, e.g. http://localhost:5000/api
            token_provider: Returns the current bearer token, if any
            timeout: Per-request timeout in seconds; None waits indefinitely
            session: Optional pre-configured requests session
        """
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self.timeout = timeout
        self.session = session or requests.Session()

    # =========================================================================
    # Transport
    # =========================================================================

    def _request_sync(
        self, method: str, path: str, json_body: Optional[Any] = None
    ) -> Any:
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}
        token = self.token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = self.session.request(
                method, url, json=json_body, headers=headers, timeout=self.timeout
            )
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            raise TransientNetworkFailure(f"{method} {path} failed: {e}") from e
        except requests.exceptions.RequestException as e:
            raise RemoteRequestError(f"{method} {path} failed: {e}") from e

        status = response.status_code
        if status in (401, 403):
            raise AuthenticationError(_error_message(response), status_code=status)
        if status >= 500:
            raise TransientNetworkFailure(_error_message(response), status_code=status)
        if status >= 400:
            raise RemoteRequestError(_error_message(response), status_code=status)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteRequestError(
                f"{method} {path} returned a non-JSON body", status_code=status
            ) from e

    async def _request(
        self, method: str, path: str, json_body: Optional[Any] = None
    ) -> Any:
        logger.debug("%s %s", method, path)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, functools.partial(self._request_sync, method, path, json_body)
        )

    # =========================================================================
    # Authentication
    # =========================================================================

    async def login(self, email: str, password: str) -> str:
        """Authenticate and return a session token."""
        data = await self._request(
            "POST", "/auth/login", {"email": email, "password": password}
        )
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise AuthenticationError("Login response did not include a token")
        return str(token)

    async def register(self, email: str, password: str) -> Dict[str, Any]:
        """Create an account."""
        data = await self._request(
            "POST", "/auth/register", {"email": email, "password": password}
        )
        return data if isinstance(data, dict) else {}

    # =========================================================================
    # Settings and entries
    # =========================================================================

    async def get_settings(self) -> Settings:
        """Read the account settings."""
        return _parse(Settings, await self._request("GET", "/settings"), "settings")

    async def save_settings(
        self, settings: Union[Settings, Dict[str, Any]]
    ) -> Settings:
        """Save full or partial settings and return the stored record."""
        body = settings.to_wire() if isinstance(settings, Settings) else dict(settings)
        return _parse(
            Settings, await self._request("POST", "/settings", body), "settings"
        )

    async def get_all_completed_entries(self) -> List[CompletedEntry]:
        """Read the full timestamped entry history."""
        data = await self._request("GET", "/stats/all")
        if isinstance(data, dict):
            data = data.get("completed", data.get("entries"))
        return valid_entries(data)

    async def get_completed_count(self) -> int:
        """Count completed entries."""
        data = await self._request("GET", "/stats/completed")
        if isinstance(data, dict) and isinstance(data.get("count"), int):
            return data["count"]
        raise RemoteRequestError("Count response did not include a count")

    async def record_completed(self, entry: CompletedEntry) -> CompletedEntry:
        """Store one newly completed entry and return it with its identity."""
        data = await self._request(
            "POST", "/stats/complete", entry.to_wire(include_id=False)
        )
        stored = valid_entries([data]) if isinstance(data, dict) else []
        return stored[0] if stored else entry

    # =========================================================================
    # Bulk sync
    # =========================================================================

    async def get_sync_snapshot(self) -> SyncSnapshot:
        """Read settings and entries in a single call."""
        return _parse(SyncSnapshot, await self._request("GET", "/sync"), "snapshot")

    async def apply_merge(
        self,
        settings: Optional[Settings] = None,
        entries: Optional[Sequence[CompletedEntry]] = None,
    ) -> MergeResult:
        """Merge local settings and/or entries into the account."""
        body: Dict[str, Any] = {}
        if settings is not None:
            body["settings"] = settings.to_wire()
        if entries is not None:
            body["entries"] = {
                "completed": [entry.to_wire(include_id=False) for entry in entries]
            }
        return _parse(
            MergeResult, await self._request("POST", "/sync/merge", body), "merge"
        )

    async def reset_all_entries(self) -> None:
        """Delete every remote entry."""
        await self._request("DELETE", "/stats")

    async def export_account_backup(self) -> BackupDocument:
        """Produce a backup document of the account data."""
        data = await self._request("GET", "/backup")
        try:
            return BackupDocument.parse_strict(data)
        except BackupValidationError as e:
            raise RemoteRequestError(f"Remote backup is malformed: {e}") from e

    async def import_account_backup(self, document: BackupDocument) -> Dict[str, Any]:
        """Overwrite the account data from a backup document."""
        data = await self._request("POST", "/backup", document.to_wire())
        return data if isinstance(data, dict) else {}


def _parse(model: Type[ModelT], data: Any, what: str) -> ModelT:
    """Validate a response body, mapping failures to RemoteRequestError."""
    try:
        return model.model_validate(data if data is not None else {})
    except ValidationError as e:
        raise RemoteRequestError(f"Malformed {what} response: {e}") from e


def _error_message(response: requests.Response) -> str:
    """Pull a readable message out of an error response."""
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        for key in ("message", "error"):
            if isinstance(data.get(key), str):
                return data[key]
    return f"HTTP {response.status_code}: {response.reason or 'request failed'}"

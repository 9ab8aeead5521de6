"""Error taxonomy for the pomodoro sync engine.

Remote failures are split by how a caller should react to them:

- TransientNetworkFailure: the remote could not be reached. Recovered by
  retrying on the next trigger; never surfaced as data loss.
- RemoteRequestError: the remote answered, but with an error status or a body
  that could not be understood.
- IrrecoverableWriteFailure: the remote accepted part of a multi-step write.
  Not repaired automatically; the user has to retry the operation.

ValidationFailure covers malformed backup documents and corrupt local JSON.
An outstanding merge decision is not an error at all; it is reported through
the coordinator's outcome values and the ``merge-pending`` event.
"""

from typing import Optional


class PomodoroSyncError(Exception):
    """Base class for all errors raised by pomodoro_sync."""


class RemoteError(PomodoroSyncError):
    """A call to the remote account store did not complete."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        """Initialize remote error.

        Args:
            message: Human readable description
            status_code: HTTP status returned by the remote, if any
        """
        super().__init__(message)
        self.status_code = status_code


class TransientNetworkFailure(RemoteError):
    """Remote unreachable or temporarily failing; safe to retry later."""


class RemoteRequestError(RemoteError):
    """Remote rejected the request or returned an unusable response."""


class AuthenticationError(RemoteRequestError):
    """Credentials or session token were rejected."""


class IrrecoverableWriteFailure(RemoteError):
    """Remote state was partially written and needs a manual retry."""


class ValidationFailure(PomodoroSyncError):
    """Data failed structural validation."""


class BackupValidationError(ValidationFailure):
    """A backup document is malformed."""


class MergeInProgressError(PomodoroSyncError):
    """A merge resolution is already running."""


class NoPendingDecisionError(PomodoroSyncError):
    """There is no open decision slot to resolve."""

"""Errors raised by the aggregation core."""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from turbo_tasker.schemas.staging import CommitAttempt


class TaskerError(Exception):
    """Base class for turbo-tasker errors"""

    pass


class PayloadDecodeError(TaskerError):
    """Raised when an inbound event payload cannot be decoded"""

    def __init__(self, kind: str, message: str):
        self.kind = kind
        super().__init__(f"Invalid {kind} payload: {message}")


class StateConflictError(TaskerError):
    """Raised when a scan is requested while another one is running"""

    pass


class ScanInvocationError(TaskerError):
    """Raised when the external scan operation rejects"""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"Scan of {path} failed: {message}")


class CommitInvocationError(TaskerError):
    """Raised when the external commit operation rejects"""

    def __init__(self, attempt: Optional["CommitAttempt"], message: str):
        self.attempt = attempt
        correlation_id = attempt.correlation_id if attempt else "-"
        super().__init__(f"Commit {correlation_id} failed: {message}")


class ResourceNotFoundError(TaskerError):
    """Raised when a resource is not part of the current rank snapshot"""

    pass


class AckMismatchWarning(UserWarning):
    """Acknowledgement received for a path with no staged action.

    Logged only, never raised.
    """

    pass

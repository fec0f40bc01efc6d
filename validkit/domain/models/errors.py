"""Exception hierarchy raised by validkit.

``ValidationError`` is raised before any request leaves the process.
``RemoteCallError`` and its subclasses describe how a remote call failed, so
callers can tell rate limiting apart from server failure or a bad request.
"""

from typing import Any, Mapping, Optional

LIB_NAME = "ValidKit"

# Error codes used by the remote service and mirrored locally
CODE_BAD_ARGUMENTS = 1500
CODE_INVALID_TOKEN = 3000
CODE_REMOTE_FAILURE = 5000


class ValidKitError(Exception):
    """Base class for every error raised by this library."""

    def __init__(self, message: str, code: int = CODE_REMOTE_FAILURE):
        self.code = code
        self.raw_message = message
        super().__init__(f"[{LIB_NAME}] {message}")


class ValidationError(ValidKitError):
    """Caller-supplied arguments are malformed. Never retried."""

    def __init__(self, message: str, code: int = CODE_BAD_ARGUMENTS):
        super().__init__(message, code=code)


class UnknownOperationError(ValidationError):
    """A fallback was requested for an operation tag nobody registered."""

    def __init__(self, operation: Any):
        self.operation = operation
        super().__init__(f"Unknown method for fallback: {operation}")


class RemoteCallError(ValidKitError):
    """A call to the remote service did not produce a usable response."""

    retryable = False

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        headers: Optional[Mapping[str, str]] = None,
        body: Any = None,
    ):
        self.status_code = status_code
        self.headers = dict(headers or {})
        self.body = body
        prefix = f"Error {status_code}: " if status_code is not None else ""
        super().__init__(f"{prefix}{message}", code=CODE_REMOTE_FAILURE)


class RateLimited(RemoteCallError):
    """The service answered 429. Terminal for the call, never retried."""

    def __init__(
        self,
        message: str = "Rate limited (429) - not retrying",
        headers: Optional[Mapping[str, str]] = None,
        body: Any = None,
        retry_after: Optional[int] = None,
    ):
        self.retry_after = retry_after
        super().__init__(message, status_code=429, headers=headers, body=body)


class ServerError(RemoteCallError):
    """5xx from the service."""

    retryable = True


class ClientError(RemoteCallError):
    """Any non-success status other than 429 and 5xx."""


class TransportError(RemoteCallError):
    """No response was received.

    Retryable unless ``aborted`` is set, which marks a client-side abort or
    timeout rather than a network failure.
    """

    def __init__(self, message: str, aborted: bool = False):
        self.aborted = aborted
        super().__init__(message)

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return not self.aborted

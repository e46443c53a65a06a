"""Error taxonomy for API calls made by the stores.

Every failure of the API client is one of three kinds:

- NetworkError: no response was received at all
- ServerError: the server answered with a non-2xx status
- DecodeError: the response (or a token) could not be interpreted

Stores catch ``ApiError`` at their boundary and turn it into an ``ErrorInfo``
so that nothing raw reaches UI code.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict

ErrorKind = Literal["network", "server", "decode"]

# Generic messages used when the server does not supply a readable one
STATUS_FALLBACK_MESSAGES: dict[int, str] = {
    400: "Invalid input data",
    401: "Authentication required",
    403: "Access denied",
    404: "Resource not found",
    409: "Resource already exists",
    422: "Invalid data provided",
}
SERVER_FAILURE_MESSAGE = "Server error. Please try again later"
NETWORK_FAILURE_MESSAGE = "Network error. Please check your connection and try again."


def fallback_message(status: int) -> str:
    """Return the generic user-facing message for an HTTP status."""
    if status in STATUS_FALLBACK_MESSAGES:
        return STATUS_FALLBACK_MESSAGES[status]
    if status >= 500:
        return SERVER_FAILURE_MESSAGE
    return f"Error {status}: request failed"


class ApiError(Exception):
    """Base class for failures of a single API call."""

    kind: ErrorKind = "server"

    def __init__(self, message: str, status: Optional[int] = None):
        self.message = message
        self.status = status
        super().__init__(message)


class NetworkError(ApiError):
    """No response was received (connection refused, DNS, timeout)."""

    kind: ErrorKind = "network"

    def __init__(self, message: str = NETWORK_FAILURE_MESSAGE):
        super().__init__(message, status=None)


class ServerError(ApiError):
    """The server answered with a 4xx or 5xx status."""

    kind: ErrorKind = "server"

    def __init__(self, status: int, message: Optional[str] = None, body: Any = None):
        self.body = body
        super().__init__(message or fallback_message(status), status=status)

    @classmethod
    def from_body(cls, status: int, body: Any) -> "ServerError":
        """Build the error, preferring the server's own message."""
        message = None
        if isinstance(body, dict):
            candidate = body.get("message") or body.get("error")
            if isinstance(candidate, str) and candidate.strip():
                message = candidate.strip()
        return cls(status, message, body=body)


class DecodeError(ApiError):
    """A 2xx body or a token could not be decoded into the expected shape."""

    kind: ErrorKind = "decode"

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message, status=status)


class ErrorInfo(BaseModel):
    """Serializable error description kept in store state."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    status: Optional[int] = None

    @classmethod
    def from_exception(cls, exc: ApiError) -> "ErrorInfo":
        return cls(kind=exc.kind, message=exc.message, status=exc.status)

    @classmethod
    def for_collection(cls, exc: ApiError) -> "ErrorInfo":
        """Collections report decode failures as server errors."""
        kind: ErrorKind = "server" if exc.kind == "decode" else exc.kind
        return cls(kind=kind, message=exc.message, status=exc.status)

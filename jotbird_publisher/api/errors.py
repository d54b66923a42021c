"""Error taxonomy for calls to the JotBird service.

Callers decide on retries from ApiError.kind rather than by parsing the
message text.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    SERVER = "server"
    NETWORK = "network"
    UNKNOWN = "unknown"


class ApiError(Exception):
    """A failed service call, labelled with the operation that failed."""

    def __init__(self, kind: ErrorKind, message: str, context: str, status: Optional[int] = None):
        super().__init__(f"{context}: {message}")
        self.kind = kind
        self.message = message
        self.context = context
        self.status = status

    @property
    def is_not_found(self) -> bool:
        return self.kind is ErrorKind.NOT_FOUND


def classify_status(status: int, message: str = "") -> ErrorKind:
    """Map an HTTP status (and error text) to an ErrorKind."""
    if status == 404 or "not found" in message.lower():
        return ErrorKind.NOT_FOUND
    if status in (401, 403):
        return ErrorKind.AUTH
    if status == 413:
        return ErrorKind.PAYLOAD_TOO_LARGE
    if status == 429:
        return ErrorKind.RATE_LIMIT
    if status == 400 or status == 422:
        return ErrorKind.VALIDATION
    if status >= 500:
        return ErrorKind.SERVER
    return ErrorKind.UNKNOWN


__all__ = [
    "ApiError",
    "ErrorKind",
    "classify_status",
]

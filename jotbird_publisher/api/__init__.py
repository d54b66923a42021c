"""Client and errors for the JotBird publishing service."""

from jotbird_publisher.api.errors import ApiError, ErrorKind
from jotbird_publisher.api.client import JotBirdClient

__all__ = [
    "ApiError",
    "ErrorKind",
    "JotBirdClient",
]

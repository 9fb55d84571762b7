"""Error taxonomy shared by core and adapters."""

from __future__ import annotations

from enum import Enum

__all__ = ["ErrorKind", "ConfigurationError", "DispatchError", "ProtocolError"]


class ErrorKind(str, Enum):
    """Category of a per-request dispatch failure."""

    CONNECTION = "connection"
    TIMEOUT = "timeout"
    PROTOCOL = "protocol"
    STATUS = "status"
    INVALID_REQUEST = "invalid_request"
    UNKNOWN = "unknown"


class ConfigurationError(ValueError):
    """Invalid executor configuration, raised at build time."""


class DispatchError(Exception):
    """Transport failure for a single request.

    Attributes:
        kind: Failure category.
    """

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.UNKNOWN) -> None:
        super().__init__(message)
        self.kind = kind


class ProtocolError(DispatchError):
    """Non-success HTTP status, when the executor treats it as a failure.

    Attributes:
        status: HTTP status code received.
    """

    def __init__(self, status: int) -> None:
        super().__init__(f"HTTP status {status}", kind=ErrorKind.STATUS)
        self.status = status

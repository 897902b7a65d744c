from __future__ import annotations
from typing import Any


class WatchError(Exception):
    """Base class for every failure the watcher reports."""


class EncodingError(WatchError, ValueError):
    """Malformed address, identifier or block boundary."""


class TransportError(WatchError):
    """The request never produced a usable HTTP response."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProtocolError(WatchError):
    """The response is not a JSON-RPC envelope, or it carries an error."""

    def __init__(self, message: str, *, code: int | None = None, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.data = data

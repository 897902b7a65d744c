# oraclewatch/ports/transport.py
from __future__ import annotations

from typing import Protocol


class Transport(Protocol):
    """Port for a point-to-point request/response channel to the node."""

    async def submit(self, body: bytes) -> bytes:
        """Send one serialized envelope and return the raw response body.

        Raises TransportError when the channel fails or the endpoint answers
        with a non-success status.
        """

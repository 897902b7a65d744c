from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Union

from ..domain.errors import ProtocolError, TransportError
from ..domain.models import RpcRequest
from ..ports.transport import Transport
from .envelope import parse_response

log = logging.getLogger(__name__)

ResultHandler = Callable[[Any], Union[None, Awaitable[None]]]


@dataclass(slots=True)
class PollStats:
    cycles: int = 0
    results: int = 0
    failures: int = 0


def _log_result(result: Any) -> None:
    log.info("result: %s", result)


class Poller:
    """
    Submits one prepared request over and over until stopped.

    Transport and protocol failures are logged and counted, and the next
    cycle runs on schedule. Anything else propagates out of `run()`.
    """

    def __init__(
        self,
        transport: Transport,
        request: RpcRequest,
        *,
        interval_s: float = 2.0,
        on_result: ResultHandler | None = None,
    ) -> None:
        self.transport = transport
        self.request = request
        self.interval_s = interval_s
        self.on_result = on_result or _log_result
        self.stats = PollStats()
        self._body = request.to_bytes()
        self._stop = asyncio.Event()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    async def poll_once(self) -> Any:
        raw = await self.transport.submit(self._body)
        return parse_response(raw).result_or_none()

    async def _poll_unless_stopped(self) -> asyncio.Future | None:
        """Run one poll; returns the finished poll, or None if stop() won the race."""
        poll = asyncio.ensure_future(self.poll_once())
        stop = asyncio.ensure_future(self._stop.wait())
        try:
            await asyncio.wait((poll, stop), return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop.cancel()
            if not poll.done():
                poll.cancel()
                await asyncio.gather(poll, return_exceptions=True)
        return None if poll.cancelled() else poll

    async def run(self) -> PollStats:
        while not self._stop.is_set():
            self.stats.cycles += 1
            log.debug("polling (cycle %d)", self.stats.cycles)
            poll = await self._poll_unless_stopped()
            if poll is None:
                log.debug("stopped during cycle %d", self.stats.cycles)
                break
            try:
                result = poll.result()
            except (TransportError, ProtocolError) as e:
                self.stats.failures += 1
                log.warning("poll cycle %d failed: %s: %s", self.stats.cycles, type(e).__name__, e)
            else:
                self.stats.results += 1
                out = self.on_result(result)
                if inspect.isawaitable(out):
                    await out
            if self._stop.is_set():
                break
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval_s)
            except asyncio.TimeoutError:
                pass
        return self.stats

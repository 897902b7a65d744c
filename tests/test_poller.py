import asyncio
import json
import logging

import httpx
import pytest

from oraclewatch.adapters.transport_httpx import HttpxTransport
from oraclewatch.application.envelope import build_envelope
from oraclewatch.application.poller import Poller
from oraclewatch.application.query import build_filter_query
from oraclewatch.domain.errors import ProtocolError, TransportError

JOB_ID = "c3d9861a75b945888e14b37e406cd85f"
ADDR = "xdcA847a7b737e2414Fc6BEef7A1eF05aE446206B52"


def _request():
    q = build_filter_query(JOB_ID, [ADDR]).with_block_range("0x2a922c1", "latest")
    return build_envelope(q)


class FakeTransport:
    """Replays canned bodies; exceptions in the script are raised instead."""

    def __init__(self, script):
        self.script = list(script)
        self.sent: list[bytes] = []

    async def submit(self, body: bytes) -> bytes:
        self.sent.append(body)
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.mark.asyncio
async def test_poll_once_returns_result():
    t = FakeTransport([b'{"jsonrpc":"2.0","id":1,"result":[{"data":"0x"}]}'])
    p = Poller(t, _request(), interval_s=0)
    assert await p.poll_once() == [{"data": "0x"}]
    assert json.loads(t.sent[0])["method"] == "eth_getLogs"


@pytest.mark.asyncio
async def test_poll_once_raises_protocol_error():
    t = FakeTransport([b'{"jsonrpc":"2.0","id":1,"error":{"code":-32000,"message":"nope"}}'])
    with pytest.raises(ProtocolError):
        await Poller(t, _request()).poll_once()


@pytest.mark.asyncio
async def test_failures_are_logged_and_loop_continues(caplog):
    results = []
    t = FakeTransport([
        TransportError("HTTP 500", status_code=500),
        b"not json",
        b'{"jsonrpc":"2.0","id":1,"result":[]}',
    ])
    p = Poller(t, _request(), interval_s=0.01)

    def on_result(result):
        results.append(result)
        p.stop()

    p.on_result = on_result
    with caplog.at_level(logging.WARNING, logger="oraclewatch.application.poller"):
        stats = await asyncio.wait_for(p.run(), timeout=5)

    assert results == [[]]
    assert (stats.cycles, stats.results, stats.failures) == (3, 1, 2)
    messages = [r.getMessage() for r in caplog.records]
    assert any("TransportError" in m for m in messages)
    assert any("ProtocolError" in m for m in messages)


@pytest.mark.asyncio
async def test_same_body_every_cycle():
    t = FakeTransport([b'{"jsonrpc":"2.0","id":1,"result":[]}'] * 3)
    p = Poller(t, _request(), interval_s=0)
    seen = []

    async def on_result(result):
        seen.append(result)
        if len(seen) == 3:
            p.stop()

    p.on_result = on_result
    await asyncio.wait_for(p.run(), timeout=5)
    assert len(t.sent) == 3
    assert len(set(t.sent)) == 1


@pytest.mark.asyncio
async def test_stop_interrupts_sleep():
    t = FakeTransport([b'{"jsonrpc":"2.0","id":1,"result":[]}'])
    p = Poller(t, _request(), interval_s=60, on_result=lambda r: None)
    task = asyncio.create_task(p.run())
    while not t.sent:
        await asyncio.sleep(0)
    p.stop()
    stats = await asyncio.wait_for(task, timeout=5)
    assert p.stopped
    assert stats.cycles == 1


@pytest.mark.asyncio
async def test_stopped_before_run_does_nothing():
    t = FakeTransport([])
    p = Poller(t, _request())
    p.stop()
    stats = await p.run()
    assert stats.cycles == 0 and t.sent == []


@pytest.mark.asyncio
async def test_unexpected_errors_propagate():
    t = FakeTransport([KeyError("bug")])
    with pytest.raises(KeyError):
        await Poller(t, _request(), interval_s=0).run()


@pytest.mark.asyncio
async def test_http_500_over_httpx_keeps_polling():
    calls = []

    def handler(request):
        calls.append(1)
        if len(calls) == 1:
            return httpx.Response(500, text="boom")
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": ["log"]})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    transport = HttpxTransport("http://node.test", client=client)
    p = Poller(transport, _request(), interval_s=0.01)
    got = []

    def on_result(result):
        got.append(result)
        p.stop()

    p.on_result = on_result
    stats = await asyncio.wait_for(p.run(), timeout=5)
    await client.aclose()
    assert got == [["log"]]
    assert stats.failures == 1 and stats.results == 1


class HangingTransport:
    """Never answers until cancelled."""

    def __init__(self):
        self.started = asyncio.Event()
        self.cancelled = False

    async def submit(self, body: bytes) -> bytes:
        self.started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return b""


@pytest.mark.asyncio
async def test_stop_interrupts_inflight_request():
    t = HangingTransport()
    p = Poller(t, _request(), interval_s=0, on_result=lambda r: None)
    task = asyncio.create_task(p.run())
    await asyncio.wait_for(t.started.wait(), timeout=5)
    p.stop()
    stats = await asyncio.wait_for(task, timeout=1)
    assert t.cancelled
    assert (stats.cycles, stats.results, stats.failures) == (1, 0, 0)


@pytest.mark.asyncio
async def test_stop_interrupts_rate_limit_backoff():
    client = httpx.AsyncClient(transport=httpx.MockTransport(
        lambda request: httpx.Response(429, headers={"Retry-After": "3"})))
    transport = HttpxTransport("http://node.test", client=client)
    p = Poller(transport, _request(), interval_s=0)
    task = asyncio.create_task(p.run())
    await asyncio.sleep(0.1)
    p.stop()
    stats = await asyncio.wait_for(task, timeout=1)
    await client.aclose()
    assert stats.cycles == 1 and stats.failures == 0

from __future__ import annotations
import asyncio, logging, httpx
from typing import Mapping

from ..domain.errors import TransportError
from ..ports.transport import Transport

log = logging.getLogger(__name__)

_JSON_HEADERS = {"Content-Type": "application/json"}

def _retry_delay(r: httpx.Response, attempt: int, base_s: float, cap_s: float) -> float:
    ra = r.headers.get("Retry-After")
    delay = max(base_s, float(ra)) if ra and ra.isdigit() else base_s * (2 ** attempt)
    return min(delay, cap_s)

class HttpxTransport(Transport):
    def __init__(
        self,
        url: str,
        *,
        timeout_s: float = 20.0,
        headers: Mapping[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
        max_429_retries: int = 2,
        backoff_s: float = 1.0,
        max_backoff_s: float = 10.0,
    ) -> None:
        if max_429_retries < 0:
            raise ValueError(f"max_429_retries must be >= 0, got {max_429_retries}")
        self.url = url
        self.headers = {**_JSON_HEADERS, **(headers or {})}
        self.max_429_retries = max_429_retries
        self.backoff_s = backoff_s
        self.max_backoff_s = max_backoff_s
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            http2=True,
            timeout=httpx.Timeout(timeout_s),
            follow_redirects=True,
        )

    async def submit(self, body: bytes) -> bytes:
        # back off on 429 a couple of times before giving up on this cycle
        for attempt in range(self.max_429_retries + 1):
            try:
                r = await self.client.post(self.url, content=body, headers=self.headers)
            except httpx.HTTPError as e:
                raise TransportError(f"POST {self.url} failed: {type(e).__name__}: {e}") from e
            if r.status_code == 429 and attempt < self.max_429_retries:
                delay = _retry_delay(r, attempt, self.backoff_s, self.max_backoff_s)
                log.debug("rate limited by %s, retrying in %.1fs", self.url, delay)
                await asyncio.sleep(delay); continue
            if not r.is_success:
                raise TransportError(f"POST {self.url} returned HTTP {r.status_code}", status_code=r.status_code)
            return r.content
        raise TransportError(f"POST {self.url} still rate limited after retries", status_code=429)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

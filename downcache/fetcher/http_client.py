"""httpx-backed fetch capability for live requests."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


@dataclass
class RawResponse:
    status_code: int
    content: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)
    url: str = ""

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


# Any async callable with this shape can stand in for HttpFetcher.fetch.
Fetch = Callable[[str], Awaitable[RawResponse]]


class HttpFetcher:
    """Fetch URLs with a shared :class:`httpx.AsyncClient`.

    Redirects are followed. Transport failures propagate as ``httpx.HTTPError``;
    non-200 responses are returned as-is for the caller to judge.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, headers: dict[str, str] | None = None, transport=None):
        self.timeout = timeout
        self.headers = headers or {}
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    def _ensure_client(self) -> httpx.AsyncClient:
        # The connection pool belongs to the loop it was opened on; each new loop gets its own client.
        loop = asyncio.get_running_loop()
        if self._client is None or self._client.is_closed or self._loop is not loop:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers=self.headers,
                transport=self._transport,
            )
            self._loop = loop
        return self._client

    async def fetch(self, url: str) -> RawResponse:
        client = self._ensure_client()
        response = await client.get(url)
        logger.debug("GET %s -> %s (%d bytes)", url, response.status_code, len(response.content))
        return RawResponse(
            status_code=response.status_code,
            content=response.content,
            headers=dict(response.headers),
            url=str(response.url),
        )

    async def aclose(self) -> None:
        if self._client is not None and self._loop is asyncio.get_running_loop():
            await self._client.aclose()
        self._client = None
        self._loop = None

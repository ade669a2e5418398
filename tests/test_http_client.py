"""Tests for the httpx fetch capability, with respx standing in for the network."""

import asyncio

import httpx
import pytest
import respx
from httpx import Response

from config.settings import CacheConfig
from downcache.fetcher.errors import BadStatus, FetchError
from downcache.fetcher.http_client import HttpFetcher
from downcache.fetcher.retriever import Downcache, FetchStatus


async def _fetch_once(url: str):
    fetcher = HttpFetcher()
    try:
        return await fetcher.fetch(url)
    finally:
        await fetcher.aclose()


@respx.mock
def test_fetch_returns_raw_response():
    respx.get("https://api.test/items").mock(
        return_value=Response(200, content=b'{"ok": true}', headers={"Content-Type": "application/json"})
    )
    response = asyncio.run(_fetch_once("https://api.test/items"))
    assert response.status_code == 200
    assert response.content == b'{"ok": true}'
    assert response.headers["content-type"] == "application/json"


@respx.mock
def test_follows_redirects():
    respx.get("https://api.test/old").mock(
        return_value=Response(301, headers={"Location": "https://api.test/new"})
    )
    respx.get("https://api.test/new").mock(return_value=Response(200, text="moved"))

    response = asyncio.run(_fetch_once("https://api.test/old"))
    assert response.status_code == 200
    assert response.text == "moved"
    assert response.url == "https://api.test/new"


@respx.mock
def test_non_200_is_returned_not_raised():
    respx.get("https://api.test/missing").mock(return_value=Response(404, text="nope"))
    response = asyncio.run(_fetch_once("https://api.test/missing"))
    assert response.status_code == 404


@respx.mock
def test_transport_error_propagates():
    respx.get("https://api.test/down").mock(side_effect=httpx.ConnectError("refused"))
    with pytest.raises(httpx.ConnectError):
        asyncio.run(_fetch_once("https://api.test/down"))


# ---------------------------------------------------------------------------
# Downcache with the default HTTP fetcher
# ---------------------------------------------------------------------------

def _config(tmp_path):
    return CacheConfig(directory=str(tmp_path), rate_limit=0)


@respx.mock
def test_end_to_end_cache_then_hit(tmp_path):
    route = respx.get("https://api.test/v1/report/").mock(return_value=Response(200, text="report body"))

    async def go():
        async with Downcache(_config(tmp_path)) as dc:
            first = await dc.retrieve("https://api.test/v1/report/")
            second = await dc.retrieve("https://api.test/v1/report/")
            return first, second

    first, second = asyncio.run(go())
    assert first.status is FetchStatus.FETCHED_AND_CACHED
    assert second.status is FetchStatus.FROM_CACHE
    assert route.call_count == 1
    assert (tmp_path / "api.test" / "v1" / "report").read_text() == "report body"


@respx.mock
def test_end_to_end_transport_error(tmp_path):
    respx.get("https://api.test/flaky").mock(side_effect=httpx.ReadTimeout("timed out"))

    async def go():
        async with Downcache(_config(tmp_path)) as dc:
            return await dc.retrieve("https://api.test/flaky")

    with pytest.raises(FetchError) as exc_info:
        asyncio.run(go())
    assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)


@respx.mock
def test_end_to_end_404(tmp_path):
    respx.get("https://api.test/gone").mock(return_value=Response(404, text="gone"))

    async def go():
        async with Downcache(_config(tmp_path)) as dc:
            return await dc.retrieve("https://api.test/gone")

    with pytest.raises(BadStatus) as exc_info:
        asyncio.run(go())
    assert exc_info.value.status_code == 404
    assert not (tmp_path / "api.test" / "gone").exists()


@respx.mock
def test_new_event_loop_gets_new_client():
    respx.get("https://api.test/ping").mock(return_value=Response(200, text="pong"))
    fetcher = HttpFetcher()

    async def fetch_and_report():
        await fetcher.fetch("https://api.test/ping")
        return fetcher._client

    first = asyncio.run(fetch_and_report())
    second = asyncio.run(fetch_and_report())
    assert first is not second
    asyncio.run(fetcher.aclose())
    assert fetcher._client is None

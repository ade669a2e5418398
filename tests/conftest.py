"""Shared fixtures: an in-process fake for the fetch capability."""

import pytest

from config.settings import CacheConfig
from downcache.fetcher.http_client import RawResponse
from downcache.fetcher.retriever import Downcache


class FakeFetch:
    """Async fetch stand-in returning canned responses and recording calls."""

    def __init__(self):
        self.responses: dict[str, RawResponse | Exception] = {}
        self.calls: list[str] = []

    def add(self, url: str, body: bytes | str = b"", status_code: int = 200, headers=None):
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.responses[url] = RawResponse(status_code=status_code, content=body, headers=headers or {}, url=url)

    def fail(self, url: str, error: Exception):
        self.responses[url] = error

    async def __call__(self, url: str) -> RawResponse:
        self.calls.append(url)
        response = self.responses.get(url)
        if response is None:
            return RawResponse(status_code=404, content=b"not found", url=url)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fake_fetch():
    return FakeFetch()


@pytest.fixture
def config(tmp_path):
    # rate_limit=0 so tests can fetch repeatedly; limiter tests set their own.
    return CacheConfig(directory=str(tmp_path / "cache"), rate_limit=0, log_level="verbose")


@pytest.fixture
def dc(config, fake_fetch):
    return Downcache(config, fetch=fake_fetch)

"""Cache-or-fetch orchestrator: serve a URL from disk, or fetch it live and store it."""

import dataclasses
import json
import logging
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Mapping

from config.settings import CacheConfig, ConfigUpdate
from downcache.fetcher.errors import (
    BadStatus,
    DowncacheError,
    FetchError,
    ParseError,
    RateLimited,
    StorageError,
)
from downcache.fetcher.http_client import Fetch, HttpFetcher, RawResponse
from downcache.fetcher.rate_limiter import RateLimiter
from downcache.utils.cache import CacheStore, Storage
from downcache.utils.logging import to_logging_level
from downcache.utils.paths import url_to_path

VERBOSE = logging.DEBUG


class FetchStatus(str, Enum):
    FROM_CACHE = "retrieved from cache"
    FETCHED_AND_CACHED = "retrieved live and cached"
    FETCHED_NOT_CACHED = "retrieved live, not cached"
    ERROR = "error"


@dataclass
class FetchRequest:
    url: str
    path: str | None = None  # relative cache path; derived from url when unset
    force: bool = False
    no_cache: bool = False
    json: bool = False
    directory: str | None = None
    rate_limit: int | None = None


@dataclass
class FetchResult:
    status: FetchStatus
    url: str
    path: str
    body: Any = None
    content: bytes = b""
    status_code: int | None = None
    headers: dict[str, str] | None = None

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    @property
    def from_cache(self) -> bool:
        return self.status is FetchStatus.FROM_CACHE


@dataclass(frozen=True)
class _Call:
    """A request resolved against one config snapshot."""

    request: FetchRequest
    path: Path
    limiter: RateLimiter
    log_level: int


class Downcache:
    """Disk-backed response cache with a rate limit on live fetches.

    Each instance owns its configuration, rate limiter and (unless one is
    injected) its HTTP client, so instances with different settings can be
    used side by side.

    Example::

        async with Downcache(CacheConfig(directory="./cache/")) as dc:
            result = await dc.retrieve("https://example.com/data.json", json=True)
            print(result.status.value, result.body)
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        fetch: Fetch | None = None,
        storage: Storage | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._config = config or CacheConfig.from_settings()
        self._http = HttpFetcher() if fetch is None else None
        self.fetch = fetch or self._http.fetch
        self.store = CacheStore(storage)
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self._clock = clock
        self._limiter = RateLimiter(self._config.rate_limit, clock=clock)
        # one bucket per distinct per-call rate_limit, never evicted
        self._call_limiters: dict[int, RateLimiter] = {}

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def config(self) -> CacheConfig:
        """Current settings. Snapshots are immutable; configure() replaces them."""
        return self._config

    @property
    def limiter(self) -> RateLimiter:
        return self._limiter

    def configure(self, update: ConfigUpdate | Mapping[str, Any] | None = None, **fields: Any) -> CacheConfig:
        """Merge a partial update into the settings used by subsequent calls.

        A changed ``rate_limit`` installs a fresh limiter; calls already in
        flight keep the snapshot they started with.
        """
        previous = self._config
        self._config = previous.merged(ConfigUpdate.coerce(update, **fields))
        if self._config.rate_limit != previous.rate_limit:
            self.logger.debug("Rate limit changed to %d ms, resetting limiter", self._config.rate_limit)
            self._limiter = RateLimiter(self._config.rate_limit, clock=self._clock)
        return self._config

    def to_path(self, url: str) -> str:
        return url_to_path(url)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def retrieve(self, url_or_request: "str | FetchRequest | Mapping[str, Any]", **options: Any) -> FetchResult:
        """Return the cached body for a URL, fetching and caching it on a miss."""
        call = self._prepare(url_or_request, options)
        request = call.request

        if request.force:
            return await self._download(call)

        body = await self.store.read(call.path)
        if body is None:
            self._log(call, VERBOSE, "Couldn't find %s in cache (looked at %s). Calling live.", request.url, call.path)
            return await self._download(call)

        self._log(call, VERBOSE, "Loaded %s from cache at %s", request.url, call.path)
        result = FetchResult(
            status=FetchStatus.FROM_CACHE,
            url=request.url,
            path=str(call.path),
            content=body,
        )
        return self._finish(call, result)

    async def download(self, url_or_request: "str | FetchRequest | Mapping[str, Any]", **options: Any) -> FetchResult:
        """Fetch live (rate limited) and write through, ignoring any cached copy."""
        options["force"] = True
        return await self._download(self._prepare(url_or_request, options))

    async def download_direct(self, url_or_request: "str | FetchRequest | Mapping[str, Any]", **options: Any) -> FetchResult:
        """Fetch live and write through without consulting the rate limiter."""
        options["force"] = True
        return await self._download(self._prepare(url_or_request, options), limited=False)

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()

    async def __aenter__(self) -> "Downcache":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _prepare(self, url_or_request, options: Mapping[str, Any]) -> _Call:
        if isinstance(url_or_request, FetchRequest):
            request = dataclasses.replace(url_or_request, **options)
        elif isinstance(url_or_request, Mapping):
            request = FetchRequest(**{**url_or_request, **options})
        else:
            request = FetchRequest(url=url_or_request, **options)

        config = self._config
        directory = request.directory if request.directory is not None else config.directory
        # url must parse even when an explicit path is given
        derived = url_to_path(request.url)
        path = Path(directory) / (request.path or derived)

        call = _Call(
            request=request,
            path=path,
            limiter=self._limiter_for(request.rate_limit, config),
            log_level=to_logging_level(config.log_level),
        )
        self._log(call, VERBOSE, "Directory for cache is %s", directory)
        self._log(call, VERBOSE, "Page will be written to %s", path)
        return call

    def _limiter_for(self, rate_limit: int | None, config: CacheConfig) -> RateLimiter:
        if rate_limit is None or rate_limit == config.rate_limit:
            return self._limiter
        limiter = self._call_limiters.get(rate_limit)
        if limiter is None:
            limiter = self._call_limiters[rate_limit] = RateLimiter(rate_limit, clock=self._clock)
        return limiter

    async def _download(self, call: _Call, limited: bool = True) -> FetchResult:
        request = call.request
        if limited and not call.limiter.acquire():
            self._log(call, logging.WARNING, "Rate limited %s", request.url)
            raise RateLimited(f"Rate limited: {request.url}", url=request.url)

        try:
            response: RawResponse = await self.fetch(request.url)
        except DowncacheError:
            raise
        except Exception as e:
            self._log(call, logging.ERROR, "Error retrieving %s: %s (%s)", request.url, e, type(e).__name__)
            raise FetchError(f"Error retrieving {request.url}: {e}", url=request.url) from e

        if response.status_code != 200:
            self._log(
                call, logging.INFO,
                "Did not cache %s because response code was %s", request.url, response.status_code,
            )
            raise BadStatus(
                f"Bad response code {response.status_code} for {request.url}",
                url=request.url,
                response=response,
            )

        result = FetchResult(
            status=FetchStatus.FETCHED_NOT_CACHED,
            url=request.url,
            path=str(call.path),
            content=response.content,
            status_code=response.status_code,
            headers=response.headers,
        )
        if request.no_cache:
            return self._finish(call, result)

        try:
            await self.store.write(call.path, response.content)
        except StorageError as e:
            self._log(call, logging.ERROR, "Could not cache %s at %s: %s", request.url, call.path, e)
            result.status = FetchStatus.ERROR
            result.body = result.text
            e.url = request.url
            e.result = result
            raise

        self._log(call, VERBOSE, "Cached at %s", call.path)
        result.status = FetchStatus.FETCHED_AND_CACHED
        return self._finish(call, result)

    def _finish(self, call: _Call, result: FetchResult) -> FetchResult:
        text = result.text
        if not call.request.json:
            result.body = text
            return result

        try:
            result.body = json.loads(text)
        except ValueError as e:
            self._log(call, logging.ERROR, "Couldn't parse response from %s as JSON", result.url)
            result.body = text
            raise ParseError(f"Invalid JSON from {result.url}: {e}", url=result.url, raw=text, result=result) from e
        return result

    def _log(self, call: _Call, level: int, msg: str, *args: Any) -> None:
        if level >= call.log_level:
            self.logger.log(level, msg, *args)

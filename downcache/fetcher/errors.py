"""Exceptions raised by :class:`~downcache.fetcher.retriever.Downcache`.

Every failure of a retrieve call surfaces as exactly one of these::

    DowncacheError
    +-- InvalidURL     URL cannot be parsed or has no host
    +-- RateLimited    no token available, no fetch performed
    +-- FetchError     transport failure (DNS, connect, TLS, timeout)
    +-- BadStatus      live response was not 200; nothing cached
    +-- StorageError   directory or file I/O failed
    +-- ParseError     body is not valid JSON
"""

from typing import Any


class DowncacheError(Exception):
    """Base exception for all downcache errors."""

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message)
        self.url = url


class InvalidURL(DowncacheError):
    pass


class RateLimited(DowncacheError):
    """Raised when the rate limiter has no token for a live fetch."""


class FetchError(DowncacheError):
    """Raised on transport-level failures. The original error is ``__cause__``."""


class BadStatus(DowncacheError):
    """Raised when a live fetch returns anything other than HTTP 200."""

    def __init__(self, message: str, url: str | None = None, response=None):
        super().__init__(message, url=url)
        self.response = response

    @property
    def status_code(self) -> int | None:
        return self.response.status_code if self.response is not None else None

    @property
    def body(self) -> str:
        return self.response.text if self.response is not None else ""


class StorageError(DowncacheError):
    """Raised when reading or writing a cache file fails.

    When the failure happens while caching a successful live fetch,
    ``result`` holds the fetched data (status ``ERROR``) so callers still
    get the body.
    """

    def __init__(self, message: str, url: str | None = None, path: str | None = None, result=None):
        super().__init__(message, url=url)
        self.path = path
        self.result = result


class ParseError(DowncacheError):
    """Raised when a body requested as JSON cannot be decoded.

    ``raw`` keeps the undecoded text for callers that want to fall back to it.
    """

    def __init__(self, message: str, url: str | None = None, raw: str = "", result: Any = None):
        super().__init__(message, url=url)
        self.raw = raw
        self.result = result

"""Module-level convenience API backed by one process-wide :class:`Downcache`.

    from downcache import api

    api.set("directory", "./data/cache/")
    result = asyncio.run(api.retrieve("https://example.com/feed.json", json=True))

Option names from older callers (``dir``, ``limit``, ``log``, ``nocache``)
are accepted here and translated; the core only knows the new names.
"""

from typing import Any, Mapping

from config.settings import CacheConfig
from downcache.fetcher.retriever import Downcache, FetchRequest, FetchResult
from downcache.utils.paths import url_to_path

__all__ = ["download", "download_direct", "get_default", "reset_default", "retrieve", "set", "url_to_path"]

ALIASES = {
    "dir": "directory",
    "limit": "rate_limit",
    "log": "log_level",
    "nocache": "no_cache",
}

_default: Downcache | None = None


def _translate(options: Mapping[str, Any]) -> dict[str, Any]:
    return {ALIASES.get(key, key): value for key, value in options.items()}


def get_default() -> Downcache:
    """Return the shared instance, creating it from Settings on first use."""
    global _default
    if _default is None:
        _default = Downcache(CacheConfig.from_settings())
    return _default


def reset_default(instance: Downcache | None = None) -> None:
    """Replace (or drop) the shared instance."""
    global _default
    _default = instance


async def retrieve(url: "str | FetchRequest | Mapping[str, Any]", opts: Mapping[str, Any] | None = None, **options: Any) -> FetchResult:
    if isinstance(url, Mapping):
        url = _translate(url)
    return await get_default().retrieve(url, **_translate({**(opts or {}), **options}))


async def download(url: str, opts: Mapping[str, Any] | None = None, **options: Any) -> FetchResult:
    return await get_default().download(url, **_translate({**(opts or {}), **options}))


async def download_direct(url: str, opts: Mapping[str, Any] | None = None, **options: Any) -> FetchResult:
    return await get_default().download_direct(url, **_translate({**(opts or {}), **options}))


def set(key_or_options: "str | Mapping[str, Any]", value: Any = None) -> CacheConfig:
    """Update the shared settings: ``set("limit", 500)`` or ``set({"dir": "./c/"})``."""
    if isinstance(key_or_options, str):
        update = {key_or_options: value}
    elif isinstance(key_or_options, Mapping):
        update = dict(key_or_options)
    else:
        raise TypeError(f"set() expects a key and value or a mapping, got {type(key_or_options).__name__}")
    return get_default().configure(_translate(update))

"""Plain-file storage for cached response bodies."""

import asyncio
import logging
import os
import uuid
from pathlib import Path
from typing import Protocol

from downcache.fetcher.errors import StorageError

logger = logging.getLogger(__name__)


class Storage(Protocol):
    async def read_bytes(self, path: Path) -> bytes: ...

    async def write_bytes(self, path: Path, data: bytes) -> None: ...

    async def make_dirs(self, path: Path) -> None: ...


class LocalStorage:
    """Local filesystem storage. Blocking calls run in a worker thread."""

    async def read_bytes(self, path: Path) -> bytes:
        return await asyncio.to_thread(Path(path).read_bytes)

    async def write_bytes(self, path: Path, data: bytes) -> None:
        await asyncio.to_thread(_replace_file, Path(path), data)

    async def make_dirs(self, path: Path) -> None:
        await asyncio.to_thread(Path(path).mkdir, parents=True, exist_ok=True)


def _replace_file(path: Path, data: bytes) -> None:
    # Write beside the target and rename over it so readers never see a half-written body.
    tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
    try:
        tmp.write_bytes(data)
        os.replace(tmp, path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise


class CacheStore:
    def __init__(self, storage: Storage | None = None):
        self.storage = storage or LocalStorage()

    async def read(self, path: str | Path) -> bytes | None:
        """Return the cached body at ``path``, or None when missing, empty or unreadable."""
        try:
            body = await self.storage.read_bytes(Path(path))
        except (FileNotFoundError, NotADirectoryError):
            return None
        except OSError as e:
            # unreadable entries are a miss
            logger.debug("Could not read %s, treating as a miss: %s", path, e)
            return None

        if not body:
            logger.debug("Empty cache file at %s", path)
            return None
        return body

    async def write(self, path: str | Path, body: bytes) -> None:
        """Create parent directories and write the whole body, overwriting."""
        path = Path(path)
        try:
            await self.storage.make_dirs(path.parent)
            await self.storage.write_bytes(path, body)
        except OSError as e:
            raise StorageError(f"Could not write {path}: {e}", path=str(path)) from e

"""
On-disk document cache with age-based freshness.

A document is identified by a cache key (typically the upstream id) and lives
at a caller-chosen path below the cache root. Reading a fresh document takes
no lock. A missing or stale document is refetched under a per-key lock, so
concurrent requests for the same key trigger exactly one fetch, and written
atomically so readers never observe a partial file. Artifacts derived from a
document are produced before the document itself is replaced, so a fresh
document always comes with its derived artifacts.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
import time
from collections.abc import Awaitable, Callable
from datetime import timedelta
from pathlib import Path
from typing import BinaryIO

from .config import CacheConfig, get_cache_config
from .exceptions import CacheStorageError, InvalidMaxAgeError
from .keyed_lock import KeyedLock

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[bytes]]
DeriveHook = Callable[[bytes, Path], Awaitable[None]]


def atomic_write(path: Path, content: bytes) -> None:
    """Write ``content`` to ``path`` through a temporary sibling file.

    The temporary file is moved over the target with ``os.replace`` once it is
    complete. On any failure it is removed and the previous file, if any, is
    left untouched.

    Raises:
        CacheStorageError: If the directory or file cannot be written.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
    except OSError as e:
        raise CacheStorageError(str(path), str(e)) from e

    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException as e:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        if isinstance(e, OSError):
            raise CacheStorageError(str(path), str(e)) from e
        raise


class DocumentCache:
    """Maps cache keys to locally persisted documents with a freshness policy.

    Args:
        config: Cache configuration. Defaults to the environment-driven config.
        clock: Wall-clock source in epoch seconds, compared to file mtimes.
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or get_cache_config()
        self._clock = clock
        self._locks = KeyedLock()

    @property
    def root(self) -> Path:
        """Directory holding every cached artifact."""
        return self.config.cache_root

    def age(self, path: Path) -> timedelta | None:
        """Time since ``path`` was last written, or None if it does not exist."""
        try:
            mtime = path.stat().st_mtime
        except FileNotFoundError:
            return None
        return timedelta(seconds=max(0.0, self._clock() - mtime))

    def is_fresh(self, path: Path, max_age: timedelta) -> bool:
        """Whether ``path`` exists and is no older than ``max_age``."""
        age = self.age(path)
        return age is not None and age <= max_age

    def is_fetching(self, key: str) -> bool:
        """Whether a fetch for ``key`` is currently in flight."""
        return self._locks.locked(key)

    async def get_fresh_document(
        self,
        key: str,
        path: Path,
        fetch: Fetcher,
        *,
        max_age: timedelta,
        derive: DeriveHook | None = None,
    ) -> Path:
        """Return ``path`` once it holds a document no older than ``max_age``.

        Args:
            key: Serialization key; one fetch per key runs at a time.
            path: Location of the cached document.
            fetch: Coroutine factory producing the document bytes.
            max_age: Freshness window.
            derive: Awaited with the fetched bytes and ``path`` before the
                document is replaced. If it raises (or the task is cancelled)
                the previous document stays in place, so the next call
                fetches again.

        Returns:
            The path of the fresh document.

        Raises:
            InvalidMaxAgeError: If ``max_age`` is negative.
            CacheStorageError: If the fetched document cannot be written.
            Exception: Whatever ``fetch`` or ``derive`` raises; the previous
                document stays.
        """
        if max_age < timedelta(0):
            raise InvalidMaxAgeError(max_age.total_seconds())

        if self.is_fresh(path, max_age):
            logger.debug(f"Cache hit for {key}: {path}")
            return path

        async with self._locks.acquire(key):
            # Another task may have refreshed it while we waited for the lock
            if self.is_fresh(path, max_age):
                logger.debug(f"Cache filled by concurrent fetch for {key}")
                return path

            logger.info(f"Cache miss for {key}, fetching")
            content = await fetch()
            if derive is not None:
                await derive(content, path)
            await asyncio.to_thread(atomic_write, path, content)
            logger.debug(f"Stored {len(content)} bytes for {key} at {path}")

        return path

    @staticmethod
    def open_document(path: Path) -> BinaryIO:
        """Open a cached document for binary reading."""
        return open(path, "rb")

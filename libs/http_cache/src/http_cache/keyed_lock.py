"""Per-key asyncio locks.

One lock exists per key while someone holds or waits for it. Locks are kept
in a weak-valued map, so an identifier nobody is fetching costs nothing and
unrelated identifiers never serialize each other.
"""

from __future__ import annotations

import asyncio
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class KeyedLock:
    """Mutual exclusion scoped to a string key."""

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def acquire(self, key: str) -> AsyncIterator[None]:
        """Hold the lock for ``key`` for the duration of the block.

        Waiters are released in arrival order. Cancelling a waiter leaves the
        lock untouched for the others.
        """
        lock = self._lock_for(key)
        async with lock:
            yield

    def locked(self, key: str) -> bool:
        """Whether some task currently holds the lock for ``key``."""
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)

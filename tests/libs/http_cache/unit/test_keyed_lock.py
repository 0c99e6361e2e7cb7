import asyncio
import gc

import pytest

from http_cache.keyed_lock import KeyedLock


@pytest.mark.asyncio
async def test_same_key_is_mutually_exclusive():
    locks = KeyedLock()
    active = 0
    max_active = 0

    async def worker():
        nonlocal active, max_active
        async with locks.acquire("anidb:series:1"):
            active += 1
            max_active = max(max_active, active)
            await asyncio.sleep(0.01)
            active -= 1

    await asyncio.gather(*(worker() for _ in range(5)))
    assert max_active == 1


@pytest.mark.asyncio
async def test_different_keys_do_not_serialize():
    locks = KeyedLock()
    entered = asyncio.Event()

    async def holder():
        async with locks.acquire("a"):
            await asyncio.wait_for(entered.wait(), timeout=1)

    async def other():
        async with locks.acquire("b"):
            entered.set()

    await asyncio.gather(holder(), other())
    assert entered.is_set()


@pytest.mark.asyncio
async def test_locked_reports_holder():
    locks = KeyedLock()
    assert locks.locked("a") is False

    async with locks.acquire("a"):
        assert locks.locked("a") is True
        assert locks.locked("b") is False

    assert locks.locked("a") is False


@pytest.mark.asyncio
async def test_unused_locks_are_released():
    locks = KeyedLock()
    async with locks.acquire("a"):
        assert len(locks) == 1

    gc.collect()
    assert len(locks) == 0

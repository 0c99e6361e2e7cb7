import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from anidb_metadata.rate_limiter import AniDBRateLimiter, get_shared_anidb_rate_limiter


class FakeClock:
    """Monotonic clock that only moves when the limiter sleeps."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.now += seconds


async def _tick_and_record(limiter: AniDBRateLimiter, clock: FakeClock, releases: list):
    await limiter.tick()
    releases.append(clock.now)


@pytest.mark.asyncio
async def test_first_tick_does_not_sleep():
    clock = FakeClock()
    limiter = AniDBRateLimiter(clock=clock)

    with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        await limiter.tick()
        mock_sleep.assert_not_awaited()

    assert limiter.release_history == (0.0,)


@pytest.mark.asyncio
async def test_consecutive_ticks_respect_min_interval():
    clock = FakeClock()
    limiter = AniDBRateLimiter(min_interval_seconds=3.0, clock=clock)
    releases: list[float] = []

    with patch("asyncio.sleep", new_callable=AsyncMock, side_effect=clock.sleep):
        for _ in range(10):
            await _tick_and_record(limiter, clock, releases)

    gaps = [b - a for a, b in zip(releases, releases[1:])]
    assert all(gap >= 3.0 for gap in gaps)


@pytest.mark.asyncio
async def test_average_interval_caps_releases_per_window():
    clock = FakeClock()
    limiter = AniDBRateLimiter(
        min_interval_seconds=0.0,
        average_interval_seconds=5.0,
        cooldown_window_seconds=20.0,
        clock=clock,
    )
    releases: list[float] = []

    with patch("asyncio.sleep", new_callable=AsyncMock, side_effect=clock.sleep):
        for _ in range(5):
            await _tick_and_record(limiter, clock, releases)

    # Four releases fit in a 20s window at a 5s average; the fifth waits
    assert releases == [0.0, 0.0, 0.0, 0.0, 20.0]


@pytest.mark.asyncio
async def test_concurrent_ticks_are_released_in_arrival_order():
    clock = FakeClock()
    limiter = AniDBRateLimiter(min_interval_seconds=3.0, clock=clock)
    order: list[int] = []

    async def caller(n: int) -> None:
        await limiter.tick()
        order.append(n)

    with patch("asyncio.sleep", new_callable=AsyncMock, side_effect=clock.sleep):
        tasks = [asyncio.create_task(caller(n)) for n in range(4)]
        await asyncio.gather(*tasks)

    assert order == [0, 1, 2, 3]
    history = limiter.release_history
    assert all(b - a >= 3.0 for a, b in zip(history, history[1:]))


@pytest.mark.asyncio
async def test_cancelled_tick_consumes_no_slot():
    clock = FakeClock()
    limiter = AniDBRateLimiter(min_interval_seconds=3.0, clock=clock)
    waiting = asyncio.Event()

    async def blocking_sleep(seconds: float) -> None:
        waiting.set()
        await asyncio.Event().wait()

    await limiter.tick()

    with patch("asyncio.sleep", new_callable=AsyncMock, side_effect=blocking_sleep):
        task = asyncio.create_task(limiter.tick())
        await waiting.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    assert limiter.release_history == (0.0,)

    # The next caller is only bound by the release that really happened
    clock.now = 3.0
    with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        await limiter.tick()
        mock_sleep.assert_not_awaited()

    assert limiter.release_history == (0.0, 3.0)


def test_next_release_time_reflects_history():
    clock = FakeClock()
    limiter = AniDBRateLimiter(min_interval_seconds=3.0, clock=clock)
    assert limiter.next_release_time() == 0.0

    asyncio.run(limiter.tick())
    assert limiter.next_release_time() == 3.0

    clock.now = 10.0
    assert limiter.next_release_time() == 10.0


def test_invalid_configuration_rejected():
    with pytest.raises(ValueError):
        AniDBRateLimiter(average_interval_seconds=0)
    with pytest.raises(ValueError):
        AniDBRateLimiter(average_interval_seconds=10, cooldown_window_seconds=5)


def test_get_shared_limiter_returns_singleton_instance():
    get_shared_anidb_rate_limiter.cache_clear()
    a = get_shared_anidb_rate_limiter()
    b = get_shared_anidb_rate_limiter()
    assert a is b

"""AniDB request rate limiting utilities.

This module provides a process-wide shared async rate limiter used by every
AniDB HTTP request. AniDB bans clients that request too quickly, so the
limiter is acquired *before* each request and all helpers share one budget.
"""

import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable
from functools import lru_cache

from common.config import get_settings

logger = logging.getLogger(__name__)


class AniDBRateLimiter:
    """Asynchronous rate limiter for AniDB requests.

    This limiter throttles request *start times* to respect:
    - A minimum interval between two consecutive releases.
    - An average interval, enforced over a rolling cooldown window: at most
      ``cooldown_window / average_interval`` releases fall inside any window.

    Waiters hold an ``asyncio.Lock`` while sleeping, so they are released in
    arrival order. A waiter cancelled before its release records nothing.

    Args:
        min_interval_seconds: Minimum spacing between request starts.
        average_interval_seconds: Target average spacing over the window.
        cooldown_window_seconds: Length of the rolling window.
        clock: Monotonic time source in seconds.
    """

    def __init__(
        self,
        *,
        min_interval_seconds: float = 3.0,
        average_interval_seconds: float = 5.0,
        cooldown_window_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if min_interval_seconds < 0 or average_interval_seconds <= 0:
            raise ValueError("Request intervals must be positive")
        if cooldown_window_seconds < average_interval_seconds:
            raise ValueError("Cooldown window must span at least one average interval")

        self._min_interval = float(min_interval_seconds)
        self._window = float(cooldown_window_seconds)
        self._max_in_window = max(1, int(self._window // average_interval_seconds))
        self._clock = clock
        self._lock = asyncio.Lock()
        self._recent: deque[float] = deque()

    @property
    def release_history(self) -> tuple[float, ...]:
        """Release timestamps still inside the cooldown window."""
        return tuple(self._recent)

    def _prune(self, now: float) -> None:
        cutoff = now - self._window
        while self._recent and self._recent[0] <= cutoff:
            self._recent.popleft()

    def next_release_time(self, now: float | None = None) -> float:
        """Earliest clock value at which the next release is permitted."""
        if now is None:
            now = self._clock()
        self._prune(now)

        earliest = now
        if self._recent:
            earliest = max(earliest, self._recent[-1] + self._min_interval)
            if len(self._recent) >= self._max_in_window:
                earliest = max(
                    earliest, self._recent[-self._max_in_window] + self._window
                )
        return earliest

    async def tick(self) -> None:
        """Wait until a new request can be started under the configured limits.

        This method blocks cooperatively (via `asyncio.sleep`) and is safe to call
        concurrently from multiple tasks.

        Raises:
            asyncio.CancelledError: If the waiting task is cancelled. The limiter
                state is left as if the call never happened.
        """
        async with self._lock:
            while True:
                now = self._clock()
                sleep_for = self.next_release_time(now) - now
                if sleep_for <= 0:
                    break
                logger.debug(f"AniDB rate limit: waiting {sleep_for:.2f}s")
                await asyncio.sleep(sleep_for)

            self._recent.append(self._clock())


@lru_cache(maxsize=1)
def get_shared_anidb_rate_limiter() -> AniDBRateLimiter:
    """Return a process-wide shared limiter instance for all AniDB requests.

    This is the default limiter used by `AniDBClient` unless explicitly
    overridden.

    Returns:
        AniDBRateLimiter: A singleton limiter for the current Python process.
    """
    settings = get_settings()
    return AniDBRateLimiter(
        min_interval_seconds=settings.anidb_min_request_interval,
        average_interval_seconds=settings.anidb_average_request_interval,
        cooldown_window_seconds=settings.anidb_cooldown_window,
    )

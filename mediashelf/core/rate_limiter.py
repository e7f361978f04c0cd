"""
Throughput limiter for third-party metadata APIs.

Requests are queued and dispatched one at a time in FIFO order, spaced so
that no two dispatches happen closer together than ``1 / requests_per_second``.
Each caller gets back the result (or the exception) of its own request.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from mediashelf.core.constants import (
    GOOGLE_BOOKS_REQUESTS_PER_SECOND,
    ITUNES_REQUESTS_PER_SECOND,
    OMDB_REQUESTS_PER_SECOND,
    RAWG_REQUESTS_PER_SECOND,
    TMDB_REQUESTS_PER_SECOND,
)
from mediashelf.core.exceptions import QueueClearedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _QueueItem:
    fn: Callable[[], Awaitable[Any]]
    future: asyncio.Future


class RateLimiter:
    def __init__(
        self,
        requests_per_second: float = 4,
        *,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            requests_per_second: Maximum number of requests allowed per second
            name: Label used in log messages
            clock: Monotonic time source (seconds)
            sleep: Awaitable sleep used to wait out the interval
        """
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")

        self.name = name
        self.min_interval = 1.0 / requests_per_second
        self._clock = clock
        self._sleep = sleep
        self._queue: deque[_QueueItem] = deque()
        self._processing = False
        self._last_request: float | None = None
        self._task: asyncio.Task | None = None

    async def add(self, fn: Callable[[], Awaitable[T]]) -> T:
        """
        Add a coroutine function to the rate-limited queue.

        Returns whatever ``fn`` returns once it has been dispatched, or raises
        whatever it raised.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()
        self._queue.append(_QueueItem(fn=fn, future=future))

        if not self._processing:
            self._processing = True
            self._task = loop.create_task(self._process_queue())

        return await future

    async def _process_queue(self) -> None:
        try:
            while self._queue:
                item = self._queue.popleft()
                if item.future.done():
                    # caller went away (cancelled) or queue was cleared
                    continue

                if self._last_request is not None:
                    elapsed = self._clock() - self._last_request
                    if elapsed < self.min_interval:
                        await self._sleep(self.min_interval - elapsed)

                self._last_request = self._clock()
                try:
                    result = await item.fn()
                except Exception as e:
                    logger.debug("Rate limited request failed (%s): %r", self.name, e)
                    if not item.future.done():
                        item.future.set_exception(e)
                else:
                    if not item.future.done():
                        item.future.set_result(result)
        finally:
            self._processing = False

    @property
    def queue_length(self) -> int:
        """Number of requests waiting to be dispatched."""
        return len(self._queue)

    def clear(self) -> None:
        """Fail every waiting request with QueueClearedError and empty the queue."""
        if self._queue:
            logger.warning("Clearing %d queued requests (%s)", len(self._queue), self.name)
        while self._queue:
            item = self._queue.popleft()
            if not item.future.done():
                item.future.set_exception(QueueClearedError())


# TMDB allows 40 requests per 10 seconds
tmdb_limiter = RateLimiter(TMDB_REQUESTS_PER_SECOND, name="tmdb")

# OMDB has a daily limit but no per-second limit, so stay conservative
omdb_limiter = RateLimiter(OMDB_REQUESTS_PER_SECOND, name="omdb")

# iTunes has no documented rate limit
itunes_limiter = RateLimiter(ITUNES_REQUESTS_PER_SECOND, name="itunes")

# Google Books allows 1000 requests per day
google_books_limiter = RateLimiter(GOOGLE_BOOKS_REQUESTS_PER_SECOND, name="google_books")

rawg_limiter = RateLimiter(RAWG_REQUESTS_PER_SECOND, name="rawg")

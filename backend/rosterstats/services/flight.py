"""
Fetch coordination: per-key single-flight and a bounded concurrency limiter.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Dict

from rosterstats.exceptions import Overloaded

logger = logging.getLogger(__name__)


class SingleFlight:
    """
    Collapse concurrent calls for the same key into one running task.

    Every caller awaits the shared task through asyncio.shield, so a caller
    that is cancelled (client disconnect) leaves the task running for the
    others and for the cache fill it performs.
    """

    def __init__(self):
        self._inflight: Dict[str, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._inflight)

    def in_flight(self, key: str) -> bool:
        return key in self._inflight

    async def do(self, key: str, fn: Callable[[], Awaitable[Any]]) -> Any:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(fn())
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._finish(k, t))
        else:
            logger.debug(f"Joining in-flight fetch for {key}")
        return await asyncio.shield(task)

    def _finish(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Mark the exception retrieved even when every waiter went away
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"In-flight fetch for {key} failed: {task.exception()!r}")


class FetchLimiter:
    """
    Allow at most max_concurrent fetches at once with up to max_queued waiting.
    Callers beyond the queue depth get Overloaded instead of waiting.
    """

    def __init__(self, max_concurrent: int, max_queued: int):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.max_concurrent = max_concurrent
        self.max_queued = max(0, max_queued)
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._active = 0
        self._waiting = 0

    @property
    def active(self) -> int:
        return self._active

    @property
    def waiting(self) -> int:
        return self._waiting

    @asynccontextmanager
    async def slot(self):
        if self._active >= self.max_concurrent and self._waiting >= self.max_queued:
            logger.warning(
                f"Fetch queue full ({self._active} active, {self._waiting} waiting), rejecting"
            )
            raise Overloaded("Too many concurrent upstream requests, retry shortly")
        self._waiting += 1
        try:
            await self._semaphore.acquire()
        finally:
            self._waiting -= 1
        self._active += 1
        try:
            yield
        finally:
            self._active -= 1
            self._semaphore.release()

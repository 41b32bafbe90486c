from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Dict, Hashable, Optional, Set

from surfex.config import MIN_CONCURRENCY
from surfex.errors import ConfigError
from surfex.logs import logger


class AdmissionGate:
    """Process-wide cap on in-flight network operations.

    Counters are kept so callers (and tests) can check the cap held.
    """

    def __init__(self, limit: int):
        if limit < MIN_CONCURRENCY:
            raise ConfigError(f"maximum concurrent connections must be at least {MIN_CONCURRENCY} (got {limit})")
        self.limit = limit
        self._sem = asyncio.Semaphore(limit)
        self.in_flight = 0
        self.peak = 0
        self.admitted = 0

    async def acquire(self) -> None:
        await self._sem.acquire()
        self.in_flight += 1
        self.admitted += 1
        if self.in_flight > self.peak:
            self.peak = self.in_flight

    def release(self) -> None:
        self.in_flight -= 1
        self._sem.release()

    async def __aenter__(self) -> "AdmissionGate":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release()


class CompletionTracker:
    """Counts fire-and-forget tasks so the driver can wait for the whole tree."""

    def __init__(self):
        self._pending = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return self._pending

    def spawn(self, coro: Awaitable, name: Optional[str] = None) -> asyncio.Task:
        self._pending += 1
        self._idle.clear()
        task = asyncio.ensure_future(coro)
        if name:
            task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._done)
        return task

    def _done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled():
            exc = task.exception()
            if exc is not None:
                logger.error("task %s failed: %r", task.get_name(), exc, exc_info=exc)
        self._pending -= 1
        if self._pending == 0:
            self._idle.set()

    async def wait(self) -> None:
        await self._idle.wait()

    async def cancel_all(self) -> None:
        tasks = list(self._tasks)
        for t in tasks:
            t.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


class Cooldown:
    """Keys (typically host, port) that answered 429 and must be left alone for a while."""

    def __init__(self, duration: float):
        self.duration = duration
        self._until: Dict[Hashable, float] = {}

    def trip(self, key: Hashable) -> None:
        self._until[key] = time.monotonic() + self.duration

    def active(self, key: Hashable) -> bool:
        until = self._until.get(key)
        if until is None:
            return False
        if time.monotonic() >= until:
            del self._until[key]
            return False
        return True

    def remaining(self, key: Hashable) -> float:
        until = self._until.get(key)
        if until is None:
            return 0.0
        return max(0.0, until - time.monotonic())

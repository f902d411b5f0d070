"""asyncio-backed implementation of the core SchedulerPort.

Each interval job awaits its callback before sleeping again, so ticks of
the same job never overlap.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Set

from core.ports import Job

LOGGER = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ScheduledTask:
    """Cancellable handle returned by the scheduler."""

    def __init__(self, task: asyncio.Task) -> None:
        self._task = task

    def cancel(self) -> None:
        self._task.cancel()

    @property
    def done(self) -> bool:
        return self._task.done()


class AsyncioScheduler:
    """Runs jobs at a wall-clock time or on a fixed interval."""

    def __init__(self, clock: Callable[[], datetime] = _utc_now) -> None:
        self._clock = clock
        self._tasks: Set[asyncio.Task] = set()

    def run_at(self, when: datetime, callback: Job) -> ScheduledTask:
        return self._spawn(self._run_at(when, callback))

    def run_every(self, interval_seconds: float, callback: Job) -> ScheduledTask:
        """Run ``callback`` now and then every ``interval_seconds``."""

        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        return self._spawn(self._run_every(interval_seconds, callback))

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()

    def _spawn(self, coro) -> ScheduledTask:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return ScheduledTask(task)

    def _seconds_until(self, when: datetime) -> float:
        now = self._clock()
        if when.tzinfo is None:
            when = when.astimezone()
        return max(0.0, (when - now).total_seconds())

    async def _run_at(self, when: datetime, callback: Job) -> None:
        await asyncio.sleep(self._seconds_until(when))
        await self._invoke(callback)

    async def _run_every(self, interval_seconds: float, callback: Job) -> None:
        while True:
            await self._invoke(callback)
            await asyncio.sleep(interval_seconds)

    async def _invoke(self, callback: Job) -> Optional[object]:
        try:
            return await callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            LOGGER.exception("Scheduled job %r failed", callback)
            return None

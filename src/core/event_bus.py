"""Typed publish/subscribe channels connecting the pipeline stages.

Each event type gets its own ``EventChannel``. Publishing never blocks on a
consumer and never propagates a consumer failure back to the producer or to
sibling consumers: the pipeline is strictly one-directional.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Generic, List, Set, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
Handler = Callable[[T], Any]


class EventChannel(Generic[T]):
    """Ordered fan-out of one event type to independent subscribers."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._handlers: List[Handler] = []
        self._tasks: Set[asyncio.Future] = set()

    def subscribe(self, handler: Handler) -> None:
        if handler not in self._handlers:
            self._handlers.append(handler)

    def unsubscribe(self, handler: Handler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    def publish(self, event: T) -> None:
        """Deliver ``event`` to every subscriber in subscription order.

        Synchronous handlers run inline. Handlers returning an awaitable are
        scheduled on the running loop so the delivery path never suspends.
        """

        for handler in list(self._handlers):
            try:
                result = handler(event)
            except Exception:
                LOGGER.exception("Subscriber %r failed on %s event: %r", handler, self.name, event)
                continue
            if inspect.isawaitable(result):
                self._track(asyncio.ensure_future(result))

    def _track(self, task: asyncio.Future) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Async subscriber failed on %s event", self.name, exc_info=exc)

    async def drain(self) -> None:
        """Wait until every scheduled async handler has finished."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

"""Delivery of alert records to the notification sink.

The core never formats text itself: a formatter supplied by the adapter
layer turns each typed record into the message body.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple, TypeVar

from core.event_bus import EventChannel
from core.models import TickerUpdate
from core.ports import ChatTitlePort, NotifierPort

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class AlertDispatcher:
    """Forwards events from one or more channels to a single destination."""

    def __init__(self, notifier: NotifierPort, destination: str) -> None:
        self._notifier = notifier
        self._destination = destination
        self._routes: List[Tuple[EventChannel, Callable]] = []
        self.sent = 0
        self.failed = 0

    def forward(self, channel: EventChannel[T], formatter: Callable[[T], str]) -> None:
        async def _deliver(event: T) -> bool:
            return await self.deliver(formatter(event))

        channel.subscribe(_deliver)
        self._routes.append((channel, _deliver))

    async def deliver(self, text: str) -> bool:
        """Send one message; failures are logged and counted, never raised."""

        try:
            ok = await self._notifier.send(self._destination, text)
        except Exception:
            LOGGER.exception("Notifier raised while sending to %s", self._destination)
            ok = False
        if ok:
            self.sent += 1
        else:
            self.failed += 1
            LOGGER.warning("Notification to %s was not delivered", self._destination)
        return ok

    def close(self) -> None:
        for channel, handler in self._routes:
            channel.unsubscribe(handler)
        self._routes = []


class ChatTitleSync:
    """Mirrors each published status line into a chat title."""

    def __init__(self, titles: ChatTitlePort, destination: str) -> None:
        self._titles = titles
        self._destination = destination
        self._channel: Optional[EventChannel] = None
        self.applied = 0
        self.failed = 0

    def follow(self, channel: EventChannel[TickerUpdate]) -> None:
        channel.subscribe(self._on_update)
        self._channel = channel

    async def _on_update(self, update: TickerUpdate) -> bool:
        return await self.apply(update.text)

    async def apply(self, title: str) -> bool:
        try:
            ok = await self._titles.set_title(self._destination, title)
        except Exception:
            LOGGER.exception("Title update raised for %s", self._destination)
            ok = False
        if ok:
            self.applied += 1
            LOGGER.info("Channel updated -> %s", title)
        else:
            self.failed += 1
            LOGGER.warning("Title of %s was not updated", self._destination)
        return ok

    def close(self) -> None:
        if self._channel is not None:
            self._channel.unsubscribe(self._on_update)
            self._channel = None

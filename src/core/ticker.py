"""Periodic market status line (core domain).

Polls market data on a fixed interval, renders a one-line status through a
formatter supplied by the adapter layer and publishes it only when the text
changed since the last published line.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from core.event_bus import EventChannel
from core.models import TickerUpdate, TokenStats
from core.ports import MarketDataPort, ScheduledJob, SchedulerPort

LOGGER = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PriceTicker:
    def __init__(
        self,
        market_data: MarketDataPort,
        updates: EventChannel[TickerUpdate],
        formatter: Callable[[TokenStats], str],
        scheduler: Optional[SchedulerPort] = None,
        interval_seconds: float = 180.0,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._market_data = market_data
        self._updates = updates
        self._formatter = formatter
        self._scheduler = scheduler
        self._interval = interval_seconds
        self._clock = clock
        self._last_text: Optional[str] = None
        self._job: Optional[ScheduledJob] = None
        self._polling = False

    @property
    def last_text(self) -> Optional[str]:
        return self._last_text

    @property
    def is_running(self) -> bool:
        return self._job is not None

    def start(self) -> bool:
        if self._job is not None:
            return True
        if self._scheduler is None or self._interval <= 0:
            LOGGER.error("Cannot start price ticker - no valid polling schedule")
            return False
        self._job = self._scheduler.run_every(self._interval, self.poll)
        LOGGER.info("Price ticker started (interval %ss)", self._interval)
        return True

    def stop(self) -> bool:
        if self._job is not None:
            self._job.cancel()
            self._job = None
        return True

    async def poll(self) -> Optional[TickerUpdate]:
        """Fetch one sample and publish the status line if it changed."""

        if self._polling:
            LOGGER.debug("Previous ticker poll still running, skipping tick")
            return None
        self._polling = True
        try:
            try:
                stats = await self._market_data.get_stats()
            except Exception:
                LOGGER.warning("Market data fetch failed", exc_info=True)
                return None
            if stats is None:
                LOGGER.warning("Failed to fetch pair data for ticker")
                return None
            return self.update(stats)
        finally:
            self._polling = False

    def update(self, stats: TokenStats) -> Optional[TickerUpdate]:
        text = self._formatter(stats)
        if text == self._last_text:
            LOGGER.debug("Ticker unchanged: %s", text)
            return None
        self._last_text = text
        update = TickerUpdate(text=text, stats=stats, timestamp=self._clock())
        LOGGER.info("Ticker updated: %s", text)
        self._updates.publish(update)
        return update

    def reset(self) -> None:
        """Forget the last line so the next sample is published again."""

        self._last_text = None

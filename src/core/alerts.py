"""Threshold alerting (core domain).

Two independent instances share the same shape: consume a signal, compare
it against a configured threshold, remember what already fired, and publish
a typed alert record. Each instance owns its own alerted-set.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Tuple

from core.dedup import AlertedSet
from core.event_bus import EventChannel
from core.models import LargePurchaseAlert, MilestoneAlert, PurchaseEvent, TokenStats
from core.ports import MarketDataPort, ScheduledJob, SchedulerPort

LOGGER = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _positive(value: Optional[float]) -> bool:
    return value is not None and not math.isnan(value) and value > 0


async def _fetch_stats(market_data: MarketDataPort) -> Optional[TokenStats]:
    try:
        return await market_data.get_stats()
    except Exception:
        LOGGER.warning("Market data fetch failed", exc_info=True)
        return None


class LargePurchaseAlerts:
    """Alerts once per signature when a purchase's USD value crosses the threshold."""

    def __init__(
        self,
        purchases: EventChannel[PurchaseEvent],
        alerts: EventChannel[LargePurchaseAlert],
        market_data: MarketDataPort,
        threshold_usd: Optional[float],
    ) -> None:
        self._purchases = purchases
        self._alerts = alerts
        self._market_data = market_data
        self._threshold = threshold_usd
        self._alerted = AlertedSet()
        self._running = False

    @property
    def threshold(self) -> Optional[float]:
        return self._threshold

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> bool:
        if self._running:
            return True
        if not _positive(self._threshold):
            LOGGER.warning("Cannot start large buy alerts - threshold not configured")
            return False
        self._purchases.subscribe(self.handle)
        self._running = True
        LOGGER.info("Large buy alerts started (threshold $%s)", f"{self._threshold:,.2f}")
        return True

    def stop(self) -> bool:
        self._purchases.unsubscribe(self.handle)
        self._running = False
        return True

    async def handle(self, event: PurchaseEvent) -> Optional[LargePurchaseAlert]:
        """Price one purchase and publish an alert if it qualifies."""

        if not _positive(self._threshold):
            return None
        # Re-delivery guard before spending a price fetch.
        if event.signature in self._alerted:
            return None

        stats = await _fetch_stats(self._market_data)
        if stats is None or not _positive(stats.price_usd):
            LOGGER.warning("Could not fetch token price for buy %s", event.signature)
            return None

        usd_value = float(event.amount) * stats.price_usd
        if usd_value < self._threshold:
            return None

        # A duplicate delivery may have raced us through the price fetch.
        if not self._alerted.add_if_absent(event.signature):
            return None

        alert = LargePurchaseAlert(
            signature=event.signature,
            buyer=event.buyer,
            amount=event.amount,
            usd_value=usd_value,
            unit_price=stats.price_usd,
            timestamp=event.timestamp,
        )
        LOGGER.info("Large buy alert: $%s (%s tokens) %s", f"{usd_value:,.2f}", event.amount, event.signature)
        self._alerts.publish(alert)
        return alert

    def has_alerted(self, signature: str) -> bool:
        return signature in self._alerted

    def clear(self) -> None:
        """Forget every alerted signature (testing or intentional reset)."""

        self._alerted.clear()
        LOGGER.info("Large buy alert cache cleared")


class MarketCapMilestones:
    """Polls market capitalization and announces each milestone exactly once.

    Every milestone moves from unreached to reached a single time. One poll
    crossing several milestones announces each of them, lowest first.
    """

    def __init__(
        self,
        market_data: MarketDataPort,
        alerts: EventChannel[MilestoneAlert],
        milestones: Iterable[float],
        scheduler: Optional[SchedulerPort] = None,
        interval_seconds: float = 60.0,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._market_data = market_data
        self._alerts = alerts
        self._milestones: Tuple[float, ...] = tuple(sorted(set(milestones)))
        self._scheduler = scheduler
        self._interval = interval_seconds
        self._clock = clock
        self._reached = AlertedSet()
        self._last_market_cap = 0.0
        self._job: Optional[ScheduledJob] = None
        self._polling = False

    @property
    def milestones(self) -> Tuple[float, ...]:
        return self._milestones

    @property
    def reached(self) -> Tuple[float, ...]:
        return tuple(m for m in self._milestones if m in self._reached)

    @property
    def last_market_cap(self) -> float:
        return self._last_market_cap

    @property
    def is_running(self) -> bool:
        return self._job is not None

    def start(self) -> bool:
        if self._job is not None:
            return True
        if not self._milestones:
            LOGGER.warning("Cannot start monitoring - no milestones configured")
            return False
        if self._scheduler is None or self._interval <= 0:
            LOGGER.error("Cannot start monitoring - no valid polling schedule")
            return False
        self._job = self._scheduler.run_every(self._interval, self.poll)
        LOGGER.info(
            "Market cap milestone monitoring started (interval %ss): %s",
            self._interval,
            ", ".join(f"${m:,.0f}" for m in self._milestones),
        )
        return True

    def stop(self) -> bool:
        if self._job is not None:
            self._job.cancel()
            self._job = None
            LOGGER.info("Market cap milestone monitoring stopped")
        return True

    async def poll(self) -> List[MilestoneAlert]:
        """One timer tick: fetch capitalization and check milestones."""

        if self._polling:
            return []
        self._polling = True
        try:
            stats = await _fetch_stats(self._market_data)
            if stats is None or not _positive(stats.market_cap_usd):
                LOGGER.warning("Skipping milestone check - no valid market cap sample")
                return []
            return self.check(stats.market_cap_usd)
        finally:
            self._polling = False

    def check(self, market_cap: float) -> List[MilestoneAlert]:
        """Transition and announce every unreached milestone <= ``market_cap``."""

        if not _positive(market_cap):
            return []

        fired: List[MilestoneAlert] = []
        for milestone in self._milestones:
            if market_cap < milestone:
                break
            if not self._reached.add_if_absent(milestone):
                continue
            alert = MilestoneAlert(milestone=milestone, market_cap=market_cap, timestamp=self._clock())
            fired.append(alert)
            LOGGER.info("Market cap milestone reached: $%s (current $%s)", f"{milestone:,.0f}", f"{market_cap:,.0f}")

        self._last_market_cap = market_cap
        for alert in fired:
            self._alerts.publish(alert)
        return fired

    def is_reached(self, milestone: float) -> bool:
        return milestone in self._reached

    def mark_reached(self, milestone: float) -> None:
        """Mark a milestone reached without announcing it."""

        self._reached.add_if_absent(milestone)

    def clear(self) -> None:
        """Forget every reached milestone (testing or intentional reset)."""

        self._reached.clear()
        LOGGER.info("Reached milestones cleared")

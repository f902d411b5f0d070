"""Ledger ingestion pipeline.

The pipeline enforces a strict order for every announced signature:
1) Skip signatures already emitted or currently being fetched
2) Fetch and resolve the transaction (concurrently with other signatures)
3) Drop unavailable or vacuous transactions silently
4) Emit the TransferEvent exactly once per signature

Fetches race each other, so events reach the bus in completion order, not
slot order. Downstream consumers accept that ordering.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Set

from core.dedup import AlertedSet
from core.event_bus import EventChannel
from core.models import TransferEvent
from core.ports import LedgerSubscriptionPort
from core.resolver import TransactionResolver

LOGGER = logging.getLogger(__name__)


class TransferPipeline:
    """Connects the ledger subscription to the TransferEvent channel."""

    def __init__(
        self,
        subscription: LedgerSubscriptionPort,
        resolver: TransactionResolver,
        transfers: EventChannel[TransferEvent],
        program_filter: str,
    ) -> None:
        self._subscription = subscription
        self._resolver = resolver
        self._transfers = transfers
        self._program_filter = program_filter
        self._emitted = AlertedSet()
        self._in_flight: Set[str] = set()
        self._tasks: Set[asyncio.Task] = set()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def emitted_count(self) -> int:
        return len(self._emitted)

    async def start(self) -> bool:
        if self._running:
            return True
        try:
            await self._subscription.subscribe(self._program_filter, self.on_signature)
        except Exception:
            LOGGER.exception("Failed to subscribe to ledger logs for %s", self._program_filter)
            return False
        self._running = True
        LOGGER.info("Listening for transfers of token %s", self._resolver.asset_id)
        return True

    async def stop(self) -> bool:
        if not self._running:
            return True
        self._running = False
        try:
            await self._subscription.unsubscribe()
        except Exception:
            LOGGER.exception("Error while unsubscribing from ledger logs")
            return False
        LOGGER.info("Stopped listening for token transfers")
        return True

    def on_signature(self, signature: str, context: Any = None) -> None:
        """Subscription callback; never blocks and never raises."""

        if not signature or signature in self._emitted or signature in self._in_flight:
            return
        self._in_flight.add(signature)
        task = asyncio.ensure_future(self.handle(signature))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def handle(self, signature: str) -> Optional[TransferEvent]:
        """Resolve one signature and publish its TransferEvent if new."""

        try:
            event = await self._resolver.resolve(signature)
        finally:
            self._in_flight.discard(signature)

        if event is None:
            return None
        if not self._emitted.add_if_absent(event.signature):
            LOGGER.debug("Duplicate transfer %s ignored", event.signature)
            return None

        self._transfers.publish(event)
        return event

    async def drain(self) -> None:
        """Wait for every in-flight fetch to complete."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

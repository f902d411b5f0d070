"""First-time holder tracking (core domain).

The balance map is path-dependent: events are applied in the order the bus
delivers them, which is fetch-completion order rather than slot order. A
holder may therefore occasionally be reported as new out of true ledger
sequence; that behavior is kept as is.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, List

from core.addresses import truncate_address
from core.dedup import AlertedSet
from core.event_bus import EventChannel
from core.models import NewHolderEvent, TransferEvent

LOGGER = logging.getLogger(__name__)

ZERO = Decimal(0)


class FirstHolderTracker:
    """Maintains owner balances and announces each owner's first holding once."""

    def __init__(
        self,
        transfers: EventChannel[TransferEvent],
        new_holders: EventChannel[NewHolderEvent],
    ) -> None:
        self._transfers = transfers
        self._new_holders = new_holders
        self._balances: Dict[str, Decimal] = {}
        self._alerted = AlertedSet()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> bool:
        if self._running:
            return True
        self._transfers.subscribe(self.handle)
        self._running = True
        LOGGER.info("New holder detector started")
        return True

    def stop(self) -> bool:
        self._transfers.unsubscribe(self.handle)
        self._running = False
        return True

    def handle(self, event: TransferEvent) -> List[NewHolderEvent]:
        """Apply one TransferEvent to the balance map."""

        detected: List[NewHolderEvent] = []
        try:
            for change in event.changes:
                previous = self._balances.get(change.owner, ZERO)
                self._balances[change.owner] = change.post_balance

                if previous != 0 or change.post_balance <= 0:
                    continue
                if not self._alerted.add_if_absent(change.owner):
                    continue

                detected.append(
                    NewHolderEvent(
                        owner=change.owner,
                        balance=change.post_balance,
                        signature=event.signature,
                        slot=event.slot,
                        timestamp=event.timestamp,
                        asset_id=event.asset_id,
                    )
                )
        except (AttributeError, TypeError, InvalidOperation):
            LOGGER.exception("Malformed transfer event discarded: %r", event)
            return detected

        for holder in detected:
            LOGGER.info("New holder detected: %s (balance %s)", truncate_address(holder.owner), holder.balance)
            self._new_holders.publish(holder)
        return detected

    def get_balance(self, owner: str) -> Decimal:
        return self._balances.get(owner, ZERO)

    def set_balance(self, owner: str, balance: Decimal) -> None:
        """Seed a known balance, e.g. for holders that predate the process."""

        self._balances[owner] = Decimal(str(balance))

    def has_alerted(self, owner: str) -> bool:
        return owner in self._alerted

    @property
    def tracked_count(self) -> int:
        return len(self._balances)

    @property
    def new_holder_count(self) -> int:
        return len(self._alerted)

    def clear(self) -> None:
        """Forget balances and alerted owners (testing or intentional reset)."""

        self._balances.clear()
        self._alerted.clear()
        LOGGER.info("New holder detector data cleared")

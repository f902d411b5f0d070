"""Purchase classification (core domain)."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import FrozenSet, Iterable, Optional

from core.event_bus import EventChannel
from core.models import PurchaseEvent, TransferEvent

LOGGER = logging.getLogger(__name__)


def classify_purchase(event: TransferEvent, pool_accounts: FrozenSet[str]) -> Optional[PurchaseEvent]:
    """Return a PurchaseEvent when tokens flow from a pool to a non-pool owner.

    Classification logic:
    - Pool outflows are negative deltas owned by a configured pool account.
    - Non-pool inflows are positive deltas owned by anyone else.
    - Both partitions must be nonempty.
    - The buyer is the owner of the first non-pool inflow in source order and
      the amount is the sum of all non-pool inflows, whoever owns them.
    """

    pool_changes = tuple(
        change for change in event.changes if change.delta < 0 and change.owner in pool_accounts
    )
    buyer_changes = tuple(
        change for change in event.changes if change.delta > 0 and change.owner not in pool_accounts
    )
    if not pool_changes or not buyer_changes:
        return None

    return PurchaseEvent(
        signature=event.signature,
        slot=event.slot,
        timestamp=event.timestamp,
        asset_id=event.asset_id,
        buyer=buyer_changes[0].owner,
        pool_account=pool_changes[0].owner,
        amount=sum((change.delta for change in buyer_changes), Decimal(0)),
        fee=event.fee,
        buyer_changes=buyer_changes,
        pool_changes=pool_changes,
    )


class PurchaseClassifier:
    """Consumes TransferEvents and publishes PurchaseEvents."""

    def __init__(
        self,
        transfers: EventChannel[TransferEvent],
        purchases: EventChannel[PurchaseEvent],
        pool_accounts: Iterable[str],
    ) -> None:
        self._transfers = transfers
        self._purchases = purchases
        self._pool_accounts = frozenset(pool_accounts)
        self._running = False

    @property
    def pool_accounts(self) -> FrozenSet[str]:
        return self._pool_accounts

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> bool:
        if self._running:
            return True
        if not self._pool_accounts:
            LOGGER.warning("Cannot start buy detector - no pool accounts configured")
            return False
        self._transfers.subscribe(self.handle)
        self._running = True
        LOGGER.info("Buy detector started with %s pool account(s)", len(self._pool_accounts))
        return True

    def stop(self) -> bool:
        self._transfers.unsubscribe(self.handle)
        self._running = False
        return True

    def handle(self, event: TransferEvent) -> Optional[PurchaseEvent]:
        try:
            purchase = classify_purchase(event, self._pool_accounts)
        except (AttributeError, TypeError, InvalidOperation):
            LOGGER.exception("Malformed transfer event discarded: %r", event)
            return None
        if purchase is None:
            return None
        LOGGER.debug("Purchase %s: %s bought %s", purchase.signature, purchase.buyer, purchase.amount)
        self._purchases.publish(purchase)
        return purchase

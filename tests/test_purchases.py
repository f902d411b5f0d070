from __future__ import annotations

from decimal import Decimal

from core.event_bus import EventChannel
from core.models import PurchaseEvent, TransferEvent
from core.purchases import PurchaseClassifier, classify_purchase
from helpers import change, transfer

POOLS = frozenset({"POOL", "POOL2"})


def test_pool_outflow_to_wallet_is_a_purchase() -> None:
    event = transfer("sig1", change("POOL", 100, 50), change("B", 0, 50))

    purchase = classify_purchase(event, POOLS)

    assert purchase is not None
    assert purchase.buyer == "B"
    assert purchase.pool_account == "POOL"
    assert purchase.amount == 50
    assert purchase.signature == "sig1"
    assert purchase.fee == 5000


def test_wallet_to_pool_is_not_a_purchase() -> None:
    event = transfer("sell", change("SELLER", 50, 0), change("POOL", 100, 150))
    assert classify_purchase(event, POOLS) is None


def test_wallet_to_wallet_is_not_a_purchase() -> None:
    event = transfer("p2p", change("A", 50, 0), change("B", 0, 50))
    assert classify_purchase(event, POOLS) is None


def test_multiple_receivers_sum_and_first_is_buyer() -> None:
    event = transfer(
        "split",
        change("POOL", 1000, 900),
        change("SMALL", 0, 10),
        change("POOL2", 500, 510),
        change("LARGE", 0, 90),
    )

    purchase = classify_purchase(event, POOLS)

    assert purchase is not None
    assert purchase.buyer == "SMALL"
    assert purchase.amount == Decimal("100")
    assert [c.owner for c in purchase.buyer_changes] == ["SMALL", "LARGE"]


def test_classifier_publishes_through_channels() -> None:
    transfers: EventChannel[TransferEvent] = EventChannel("transfer")
    purchases: EventChannel[PurchaseEvent] = EventChannel("purchase")
    received: list[PurchaseEvent] = []
    purchases.subscribe(received.append)
    classifier = PurchaseClassifier(transfers, purchases, ["POOL"])

    assert classifier.start()
    assert classifier.start()
    transfers.publish(transfer("sig1", change("POOL", 100, 50), change("B", 0, 50)))
    transfers.publish(transfer("sig2", change("A", 10, 0), change("B", 50, 60)))

    assert [p.signature for p in received] == ["sig1"]
    assert transfers.subscriber_count == 1

    classifier.stop()
    transfers.publish(transfer("sig3", change("POOL", 100, 50), change("B", 0, 50)))
    assert len(received) == 1


def test_classifier_without_pools_does_not_start() -> None:
    classifier = PurchaseClassifier(EventChannel("transfer"), EventChannel("purchase"), [])
    assert classifier.start() is False
    assert not classifier.is_running


def test_classifier_reports_non_finite_delta_as_malformed(caplog) -> None:
    transfers: EventChannel[TransferEvent] = EventChannel("transfer")
    purchases: EventChannel[PurchaseEvent] = EventChannel("purchase")
    classifier = PurchaseClassifier(transfers, purchases, POOLS)

    with caplog.at_level("ERROR", logger="core.purchases"):
        result = classifier.handle(transfer("nan", change("POOL", 100, "NaN"), change("B", 0, 50)))

    assert result is None
    assert "Malformed transfer event discarded" in caplog.text

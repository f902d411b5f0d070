from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from core.resolver import TransactionResolver, compute_balance_changes

MINT = "So11111111111111111111111111111111111111112"
OTHER_MINT = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"


def _balance(index: int, owner: str, amount: str, mint: str = MINT) -> dict:
    return {
        "accountIndex": index,
        "mint": mint,
        "owner": owner,
        "uiTokenAmount": {"uiAmountString": amount, "decimals": 6},
    }


def _record(pre: list, post: list, block_time: Optional[int] = 1704067200) -> dict:
    return {
        "slot": 250_000_000,
        "blockTime": block_time,
        "meta": {"fee": 5000, "preTokenBalances": pre, "postTokenBalances": post},
    }


class FakeFetcher:
    def __init__(self, records: dict, fail: bool = False) -> None:
        self.records = records
        self.fail = fail
        self.calls: list[str] = []

    async def get_transaction(self, signature: str) -> Optional[dict]:
        self.calls.append(signature)
        if self.fail:
            raise ConnectionError("rpc down")
        return self.records.get(signature)


def test_changes_only_cover_tracked_asset_with_nonzero_delta() -> None:
    record = _record(
        pre=[_balance(1, "POOL", "1000"), _balance(2, "BUYER", "0"), _balance(3, "IDLE", "7"), _balance(4, "X", "1", OTHER_MINT)],
        post=[_balance(1, "POOL", "950"), _balance(2, "BUYER", "50"), _balance(3, "IDLE", "7"), _balance(4, "X", "9", OTHER_MINT)],
    )

    changes = compute_balance_changes(record, MINT)

    assert [(c.owner, c.delta) for c in changes] == [("POOL", Decimal("-50")), ("BUYER", Decimal("50"))]
    assert changes[1].pre_balance == 0
    assert changes[1].post_balance == 50


def test_missing_pre_balance_counts_as_zero() -> None:
    record = _record(pre=[], post=[_balance(5, "NEW", "12.5")])

    changes = compute_balance_changes(record, MINT)

    assert len(changes) == 1
    assert changes[0].delta == Decimal("12.5")
    assert changes[0].pre_balance == 0


def test_closed_account_only_in_pre_balances_goes_to_zero() -> None:
    record = _record(pre=[_balance(2, "SELLER", "30"), _balance(1, "POOL", "100")], post=[_balance(1, "POOL", "130")])

    changes = compute_balance_changes(record, MINT)

    assert [(c.owner, c.delta, c.post_balance) for c in changes] == [
        ("POOL", Decimal("30"), Decimal("130")),
        ("SELLER", Decimal("-30"), Decimal("0")),
    ]


def test_raw_amount_used_when_ui_string_missing() -> None:
    post = {"accountIndex": 1, "mint": MINT, "owner": "A", "uiTokenAmount": {"amount": "2500000", "decimals": 6}}
    changes = compute_balance_changes(_record(pre=[], post=[post]), MINT)
    assert changes[0].post_balance == Decimal("2.5")


def test_resolve_builds_transfer_event() -> None:
    record = _record(pre=[_balance(1, "A", "0")], post=[_balance(1, "A", "10")])
    resolver = TransactionResolver(FakeFetcher({"sig1": record}), MINT)

    event = asyncio.run(resolver.resolve("sig1"))

    assert event is not None
    assert event.signature == "sig1"
    assert event.slot == 250_000_000
    assert event.fee == 5000
    assert event.asset_id == MINT
    assert event.timestamp == datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_resolve_falls_back_to_clock_without_block_time() -> None:
    now = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
    record = _record(pre=[], post=[_balance(1, "A", "10")], block_time=None)
    resolver = TransactionResolver(FakeFetcher({"sig1": record}), MINT, clock=lambda: now)

    event = asyncio.run(resolver.resolve("sig1"))

    assert event is not None
    assert event.timestamp == now


def test_resolve_returns_none_when_transaction_unavailable() -> None:
    resolver = TransactionResolver(FakeFetcher({}), MINT)
    assert asyncio.run(resolver.resolve("missing")) is None


def test_resolve_swallows_fetch_errors() -> None:
    resolver = TransactionResolver(FakeFetcher({}, fail=True), MINT)
    assert asyncio.run(resolver.resolve("sig1")) is None


def test_resolve_returns_none_without_changes() -> None:
    record = _record(pre=[_balance(1, "A", "5")], post=[_balance(1, "A", "5")])
    resolver = TransactionResolver(FakeFetcher({"sig1": record}), MINT)
    assert asyncio.run(resolver.resolve("sig1")) is None


def test_resolve_discards_record_with_non_numeric_account_index(caplog) -> None:
    bad = dict(_balance(1, "A", "10"), accountIndex="x")
    resolver = TransactionResolver(FakeFetcher({"sig1": _record(pre=[], post=[bad])}), MINT)

    with caplog.at_level("ERROR", logger="core.resolver"):
        assert asyncio.run(resolver.resolve("sig1")) is None

    assert "Malformed transaction sig1 discarded" in caplog.text


def test_resolve_discards_record_with_scalar_token_amount() -> None:
    bad = dict(_balance(1, "A", "10"), uiTokenAmount="10")
    resolver = TransactionResolver(FakeFetcher({"sig1": _record(pre=[], post=[bad])}), MINT)

    assert asyncio.run(resolver.resolve("sig1")) is None


def test_resolve_discards_record_with_non_finite_amount() -> None:
    record = _record(pre=[_balance(1, "A", "5")], post=[_balance(1, "A", "NaN")])
    resolver = TransactionResolver(FakeFetcher({"sig1": record}), MINT)

    assert asyncio.run(resolver.resolve("sig1")) is None


def test_resolve_discards_record_with_bad_block_time() -> None:
    record = _record(pre=[], post=[_balance(1, "A", "10")])
    record["blockTime"] = "yesterday"
    resolver = TransactionResolver(FakeFetcher({"sig1": record}), MINT)

    assert asyncio.run(resolver.resolve("sig1")) is None


def test_resolve_ignores_non_mapping_record() -> None:
    resolver = TransactionResolver(FakeFetcher({"sig1": ["not", "a", "record"]}), MINT)
    assert asyncio.run(resolver.resolve("sig1")) is None

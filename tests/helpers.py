from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Union

from core.models import BalanceChange, TransferEvent

MINT = "So11111111111111111111111111111111111111112"
Number = Union[int, str, Decimal]


def change(owner: str, pre: Number, post: Number, index: int = 0) -> BalanceChange:
    pre_balance = Decimal(str(pre))
    post_balance = Decimal(str(post))
    return BalanceChange(
        account_index=index,
        owner=owner,
        delta=post_balance - pre_balance,
        pre_balance=pre_balance,
        post_balance=post_balance,
    )


def transfer(signature: str, *changes: BalanceChange, slot: int = 1) -> TransferEvent:
    return TransferEvent(
        signature=signature,
        slot=slot,
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        asset_id=MINT,
        changes=tuple(changes),
        fee=5000,
    )

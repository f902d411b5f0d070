"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Tuple


@dataclass(frozen=True)
class BalanceChange:
    """Balance movement of the tracked asset for one token account."""

    account_index: int
    owner: str
    delta: Decimal
    pre_balance: Decimal
    post_balance: Decimal


@dataclass(frozen=True)
class TransferEvent:
    """A resolved transaction with at least one nonzero balance delta."""

    signature: str
    slot: int
    timestamp: datetime
    asset_id: str
    changes: Tuple[BalanceChange, ...]
    fee: int


@dataclass(frozen=True)
class PurchaseEvent:
    """Asset flowing out of a liquidity pool into a non-pool account."""

    signature: str
    slot: int
    timestamp: datetime
    asset_id: str
    buyer: str
    pool_account: str
    amount: Decimal
    fee: int
    buyer_changes: Tuple[BalanceChange, ...]
    pool_changes: Tuple[BalanceChange, ...]


@dataclass(frozen=True)
class NewHolderEvent:
    """First time an owner's balance moved from zero to positive."""

    owner: str
    balance: Decimal
    signature: str
    slot: int
    timestamp: datetime
    asset_id: str


@dataclass(frozen=True)
class TokenStats:
    """Snapshot returned by the market data collaborator."""

    price_usd: float
    market_cap_usd: float
    volume_24h: float
    price_change_24h_pct: float


@dataclass(frozen=True)
class LargePurchaseAlert:
    """Purchase whose USD value crossed the configured threshold."""

    signature: str
    buyer: str
    amount: Decimal
    usd_value: float
    unit_price: float
    timestamp: datetime


@dataclass(frozen=True)
class MilestoneAlert:
    """Market capitalization reached a configured milestone."""

    milestone: float
    market_cap: float
    timestamp: datetime


@dataclass(frozen=True)
class TickerUpdate:
    """Rendered one-line market status that differs from the previous one."""

    text: str
    stats: TokenStats
    timestamp: datetime


@dataclass(frozen=True)
class ContestReminder:
    """A scheduled contest start/end announcement."""

    kind: str
    contest_time: datetime
    hours_before: int
    remind_at: datetime

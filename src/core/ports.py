"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for the ledger, market data, scheduling
and notification adapters so that the core can be reused with different
backends.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, Protocol

from core.models import TokenStats

SignatureCallback = Callable[[str, Any], None]
Job = Callable[[], Awaitable[None]]


class TransactionFetcherPort(Protocol):
    """Fetches the full transaction record for a signature."""

    async def get_transaction(self, signature: str) -> Optional[dict]:
        ...


class LedgerSubscriptionPort(Protocol):
    """Push subscription announcing signatures that touched a program."""

    async def subscribe(self, program_filter: str, callback: SignatureCallback) -> None:
        ...

    async def unsubscribe(self) -> None:
        ...


class MarketDataPort(Protocol):
    """Read-only price and capitalization source."""

    async def get_stats(self) -> Optional[TokenStats]:
        ...


class NotifierPort(Protocol):
    """Fire-and-forget delivery of formatted text to a destination."""

    async def send(self, destination: str, text: str) -> bool:
        ...


class ChatTitlePort(Protocol):
    """Renames a chat, used as a live status line."""

    async def set_title(self, destination: str, title: str) -> bool:
        ...


class ScheduledJob(Protocol):
    def cancel(self) -> None:
        ...


class SchedulerPort(Protocol):
    """Wall-clock and fixed-interval callbacks."""

    def run_at(self, when: datetime, callback: Job) -> ScheduledJob:
        ...

    def run_every(self, interval_seconds: float, callback: Job) -> ScheduledJob:
        ...

"""Transaction resolution (core domain).

Turns a bare signature announced by the ledger feed into a ``TransferEvent``
restricted to the tracked asset. Unavailable transactions are an expected
condition on a live feed (not yet finalized, pruned, RPC hiccup), so they
resolve to None instead of raising.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, List, Optional, Tuple

from core.models import BalanceChange, TransferEvent
from core.ports import TransactionFetcherPort

LOGGER = logging.getLogger(__name__)

ZERO = Decimal(0)


def _ui_amount(entry: dict) -> Decimal:
    """Return the token amount of one balance entry.

    Raises ValueError for amounts that cannot be parsed or are not finite so
    the whole record is discarded instead of producing a bogus delta.
    """
    token_amount = entry.get("uiTokenAmount") or {}
    ui_string = token_amount.get("uiAmountString")
    try:
        if ui_string not in (None, ""):
            amount = Decimal(str(ui_string))
        else:
            raw_amount = token_amount.get("amount")
            if raw_amount in (None, ""):
                return ZERO
            decimals = int(token_amount.get("decimals") or 0)
            amount = Decimal(str(raw_amount)).scaleb(-decimals)
    except InvalidOperation as exc:
        raise ValueError(f"unparseable token amount: {token_amount!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"non-finite token amount: {token_amount!r}")
    return amount


def _index_by_account(entries: List[dict], asset_id: str) -> Dict[int, dict]:
    indexed: Dict[int, dict] = {}
    for entry in entries:
        if entry.get("mint") != asset_id:
            continue
        index = entry.get("accountIndex")
        if index is None:
            continue
        indexed[int(index)] = entry
    return indexed


def compute_balance_changes(record: dict, asset_id: str) -> Tuple[BalanceChange, ...]:
    """Return per-account deltas of ``asset_id`` for one transaction record.

    Post-balance entries are walked in source order; accounts only present in
    the pre-balance snapshot (closed during the transaction) follow with a
    post balance of zero. Accounts with zero net delta are excluded.

    Malformed entries raise (AttributeError, TypeError or ValueError); the
    resolver discards such records.
    """

    meta = record.get("meta") or {}
    pre_entries = _index_by_account(meta.get("preTokenBalances") or [], asset_id)
    post_entries = _index_by_account(meta.get("postTokenBalances") or [], asset_id)

    ordered_indexes = list(post_entries)
    ordered_indexes.extend(index for index in pre_entries if index not in post_entries)

    changes: List[BalanceChange] = []
    for index in ordered_indexes:
        pre = pre_entries.get(index)
        post = post_entries.get(index)
        pre_balance = _ui_amount(pre) if pre else ZERO
        post_balance = _ui_amount(post) if post else ZERO
        delta = post_balance - pre_balance
        if delta == 0:
            continue
        owner = (post or {}).get("owner") or (pre or {}).get("owner")
        if not owner:
            LOGGER.debug("Skipping token account %s without owner", index)
            continue
        changes.append(
            BalanceChange(
                account_index=index,
                owner=owner,
                delta=delta,
                pre_balance=pre_balance,
                post_balance=post_balance,
            )
        )
    return tuple(changes)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TransactionResolver:
    """Fetches a transaction and reduces it to a TransferEvent.

    Calls are independent; several may be in flight at once for different
    signatures and the resolver never serializes them.
    """

    def __init__(
        self,
        fetcher: TransactionFetcherPort,
        asset_id: str,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._fetcher = fetcher
        self._asset_id = asset_id
        self._clock = clock

    @property
    def asset_id(self) -> str:
        return self._asset_id

    async def resolve(self, signature: str) -> Optional[TransferEvent]:
        """Return the TransferEvent for ``signature`` or None when unavailable."""

        try:
            record = await self._fetcher.get_transaction(signature)
        except Exception:
            LOGGER.debug("Transaction fetch failed for %s", signature, exc_info=True)
            return None

        if not isinstance(record, dict) or not record.get("meta"):
            LOGGER.debug("Transaction %s not available yet", signature)
            return None

        try:
            changes = compute_balance_changes(record, self._asset_id)
            if not changes:
                return None

            block_time = record.get("blockTime")
            if block_time:
                timestamp = datetime.fromtimestamp(int(block_time), tz=timezone.utc)
            else:
                timestamp = self._clock()
            slot = int(record.get("slot") or 0)
            fee = int(record["meta"].get("fee") or 0)
        except (AttributeError, TypeError, ValueError, OverflowError, OSError):
            LOGGER.exception("Malformed transaction %s discarded", signature)
            return None

        return TransferEvent(
            signature=signature,
            slot=slot,
            timestamp=timestamp,
            asset_id=self._asset_id,
            changes=changes,
            fee=fee,
        )

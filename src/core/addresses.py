"""Helpers for working with Solana account addresses."""

from __future__ import annotations

from typing import Optional

from solders.pubkey import Pubkey


def normalize_address(raw_address: str) -> Optional[str]:
    """Return the canonical base58 form, or None when the address is invalid."""

    candidate = (raw_address or "").strip()
    if not candidate:
        return None
    try:
        return str(Pubkey.from_string(candidate))
    except ValueError:
        return None


def truncate_address(address: str) -> str:
    """Shorten an address for display (first 4 + ... + last 4)."""

    if not address or len(address) < 12:
        return address
    return f"{address[:4]}...{address[-4:]}"

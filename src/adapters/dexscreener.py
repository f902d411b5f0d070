"""DexScreener market data adapter.

Implements the core MarketDataPort for a single trading pair. The public
API is rate limited, so callers poll on a fixed interval and treat a None
result as a skipped sample.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from core.models import TokenStats

LOGGER = logging.getLogger(__name__)

DEXSCREENER_PAIR_URL = "https://api.dexscreener.com/latest/dex/pairs/{chain}/{pair}"


def _number(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def parse_pair_stats(data: Optional[dict]) -> Optional[TokenStats]:
    """Map a DexScreener pair payload to TokenStats (FDV preferred as market cap)."""

    if not data or not data.get("pair"):
        return None
    pair = data["pair"]
    return TokenStats(
        price_usd=_number(pair.get("priceUsd")),
        market_cap_usd=_number(pair.get("fdv") or pair.get("marketCap")),
        volume_24h=_number((pair.get("volume") or {}).get("h24")),
        price_change_24h_pct=_number((pair.get("priceChange") or {}).get("h24")),
    )


class DexScreenerClient:
    """Fetches price and capitalization for one pair."""

    def __init__(self, chain: str, pair: str, timeout_sec: int = 10) -> None:
        self.url = DEXSCREENER_PAIR_URL.format(chain=chain, pair=pair)
        self.timeout = aiohttp.ClientTimeout(total=timeout_sec)
        self._session: Optional[aiohttp.ClientSession] = None

    async def open(self) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self.timeout)

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def get_stats(self) -> Optional[TokenStats]:
        await self.open()
        try:
            async with self._session.get(self.url) as resp:
                if resp.status != 200:
                    LOGGER.warning("DexScreener returned HTTP %s", resp.status)
                    return None
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            LOGGER.error("Error fetching DexScreener data: %s", exc)
            return None
        return parse_pair_stats(data)

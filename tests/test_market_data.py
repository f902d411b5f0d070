from __future__ import annotations

from adapters.dexscreener import parse_pair_stats


def test_fdv_preferred_over_market_cap() -> None:
    stats = parse_pair_stats(
        {
            "pair": {
                "priceUsd": "0.000260",
                "fdv": 259000,
                "marketCap": 180000,
                "volume": {"h24": 12000.5},
                "priceChange": {"h24": -3.2},
            }
        }
    )
    assert stats is not None
    assert stats.price_usd == 0.00026
    assert stats.market_cap_usd == 259000
    assert stats.volume_24h == 12000.5
    assert stats.price_change_24h_pct == -3.2


def test_market_cap_used_without_fdv_and_missing_fields_default() -> None:
    stats = parse_pair_stats({"pair": {"priceUsd": "bad", "marketCap": "1000"}})
    assert stats is not None
    assert stats.price_usd == 0.0
    assert stats.market_cap_usd == 1000.0
    assert stats.volume_24h == 0.0


def test_missing_pair_is_none() -> None:
    assert parse_pair_stats({"pair": None}) is None
    assert parse_pair_stats(None) is None

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from adapters.notification_formatting import (
    build_formatter,
    build_ticker_formatter,
    format_compact,
    format_notification,
    format_percentage_change,
    format_price,
    format_ticker,
    format_token_amount,
)
from core.models import (
    ContestReminder,
    LargePurchaseAlert,
    MilestoneAlert,
    NewHolderEvent,
    TickerUpdate,
    TokenStats,
)

BUYER = "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8"
WHEN = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _large_buy() -> LargePurchaseAlert:
    return LargePurchaseAlert(
        signature="5sig",
        buyer=BUYER,
        amount=Decimal("1250000"),
        usd_value=1234.5,
        unit_price=0.000987,
        timestamp=WHEN,
    )


def test_token_amount_suffixes() -> None:
    assert format_token_amount(Decimal("1250000")) == "1.25M"
    assert format_token_amount(1500) == "1.50K"
    assert format_token_amount(Decimal("12.346")) == "12.35"


def test_price_precision_grows_for_small_prices() -> None:
    assert format_price(1.23456) == "1.235"
    assert format_price(0.012345) == "0.0123"
    assert format_price(0.000987) == "0.000987"
    assert format_price(0.0000012345) == "0.00000123"


def test_large_buy_html_escapes_and_links() -> None:
    text = format_notification(_large_buy(), "<WISH>", mode="html")
    assert "$&lt;WISH&gt;" in text
    assert "1.25M" in text
    assert "$1,234.50" in text
    assert "<code>675k...1Mp8</code>" in text
    assert 'href="https://solscan.io/tx/5sig"' in text


def test_large_buy_markdown() -> None:
    text = format_notification(_large_buy(), "WISH", mode="markdown")
    assert "**LARGE BUY ALERT**" in text
    assert "`675k...1Mp8`" in text
    assert "[View on Solscan](https://solscan.io/tx/5sig)" in text


def test_milestone_and_new_holder_bodies() -> None:
    milestone = format_notification(
        MilestoneAlert(milestone=250000.0, market_cap=263400.0, timestamp=WHEN), "WISH", mode="html"
    )
    assert "<b>$250,000</b>" in milestone
    assert "$263,400" in milestone

    holder = format_notification(
        NewHolderEvent(owner=BUYER, balance=Decimal("42"), signature="s", slot=1, timestamp=WHEN, asset_id="m"),
        "WISH",
        mode="markdown",
    )
    assert "**NEW HOLDER**" in holder
    assert "42.00 $WISH" in holder


def test_contest_reminder_wording() -> None:
    soon = ContestReminder(kind="end", contest_time=WHEN, hours_before=1, remind_at=WHEN)
    text = format_notification(soon, "WISH", mode="html")
    assert "Contest Ending Soon!" in text
    assert "<b>1 hour</b>" in text


def test_unsupported_mode_raises() -> None:
    with pytest.raises(ValueError):
        format_notification(_large_buy(), "WISH", mode="plain")
    with pytest.raises(ValueError):
        build_formatter("WISH", "plain")


def _ticker_stats(price: float = 0.00026, market_cap: float = 259_999, change: float = 12.44) -> TokenStats:
    return TokenStats(price_usd=price, market_cap_usd=market_cap, volume_24h=0.0, price_change_24h_pct=change)


def test_compact_numbers_truncate_to_k_and_m() -> None:
    assert format_compact(259_999) == "259k"
    assert format_compact(1_999_999) == "1m"
    assert format_compact(999.9) == "999"
    for value in (0, -5, float("nan"), float("inf")):
        assert format_compact(value) == "0"


def test_percentage_change_is_signed() -> None:
    assert format_percentage_change(12.44) == "+12.4"
    assert format_percentage_change(-3.27) == "-3.3"
    assert format_percentage_change(0) == "+0.0"
    assert format_percentage_change(None) == "0.0"
    assert format_percentage_change(float("nan")) == "0.0"


def test_ticker_line_matches_status_layout() -> None:
    assert format_ticker(_ticker_stats(), "WISH") == "$WISH +12.4% | $259k | $0.000260"
    assert format_ticker(_ticker_stats(price=0.0, market_cap=0.0, change=-1.0), "WISH") == "$WISH -1.0% | $0 | $0"
    assert build_ticker_formatter("WISH")(_ticker_stats()) == "$WISH +12.4% | $259k | $0.000260"


def test_ticker_update_renders_as_status_message() -> None:
    update = TickerUpdate(text="$A<B> +1.0% | $1k | $1.000", stats=_ticker_stats(), timestamp=WHEN)

    assert format_notification(update, "A<B>", "html") == "📊 <b>$A&lt;B&gt; +1.0% | $1k | $1.000</b>"
    assert format_notification(update, "A<B>", "markdown") == "📊 **$A<B> +1.0% | $1k | $1.000**"

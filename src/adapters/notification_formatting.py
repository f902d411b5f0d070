"""Shared notification formatting helpers.

Keeping formatting here prevents drift between adapters and keeps messages
consistent regardless of delivery channel.
"""

from __future__ import annotations

import html
import math
from decimal import Decimal
from typing import Callable, List, Optional, Union

from core.addresses import truncate_address
from core.models import (
    ContestReminder,
    LargePurchaseAlert,
    MilestoneAlert,
    NewHolderEvent,
    TickerUpdate,
    TokenStats,
)

SOLSCAN_TX_URL = "https://solscan.io/tx/{signature}"
DIVIDER = "──────────────"

Alert = Union[LargePurchaseAlert, MilestoneAlert, NewHolderEvent, ContestReminder, TickerUpdate]


def format_token_amount(amount: Union[Decimal, float]) -> str:
    """Compact token amount with K/M suffix and two decimals."""

    value = float(amount)
    if value >= 1_000_000:
        return f"{value / 1_000_000:.2f}M"
    if value >= 1_000:
        return f"{value / 1_000:.2f}K"
    return f"{value:.2f}"


def format_usd(amount: float) -> str:
    return f"{amount:,.2f}"


def format_price(price: float) -> str:
    """Price with precision that grows as the value shrinks."""

    if price >= 1:
        return f"{price:.3f}"
    if price >= 0.01:
        return f"{price:.4f}"
    if price >= 0.0001:
        return f"{price:.6f}"
    return f"{price:.8f}"


def format_market_cap(value: float) -> str:
    return f"{value:,.0f}"


def format_compact(value: float) -> str:
    """Whole number with lowercase k/m suffix, truncated not rounded."""

    if not value or not math.isfinite(value) or value <= 0:
        return "0"
    if value >= 1_000_000:
        return f"{int(value // 1_000_000)}m"
    if value >= 1_000:
        return f"{int(value // 1_000)}k"
    return str(int(value))


def format_percentage_change(value: Optional[float]) -> str:
    if value is None or not math.isfinite(value):
        return "0.0"
    sign = "+" if value >= 0 else "-"
    return f"{sign}{abs(value):.1f}"


def format_ticker(stats: TokenStats, token_symbol: str) -> str:
    """One-line status, e.g. ``$WISH +12.4% | $259k | $0.000260``."""

    price = stats.price_usd
    price_text = format_price(price) if price and math.isfinite(price) and price > 0 else "0"
    change = format_percentage_change(stats.price_change_24h_pct)
    return f"${token_symbol} {change}% | ${format_compact(stats.market_cap_usd)} | ${price_text}"


def build_ticker_formatter(token_symbol: str) -> Callable[[TokenStats], str]:
    def _format(stats: TokenStats) -> str:
        return format_ticker(stats, token_symbol)

    return _format


def _timestamp(alert: Alert) -> str:
    if isinstance(alert, ContestReminder):
        moment = alert.contest_time
    else:
        moment = alert.timestamp
    return moment.astimezone().strftime("%H:%M:%S %d-%m-%Y").strip()


def _tx_link(signature: str) -> str:
    return SOLSCAN_TX_URL.format(signature=signature)


def _plural_hours(hours: int) -> str:
    return f"{hours} hour{'s' if hours > 1 else ''}"


def _reminder_lines(reminder: ContestReminder, symbol: str, bold: Callable[[str], str]) -> List[str]:
    when = _timestamp(reminder)
    if reminder.kind == "start":
        if reminder.hours_before > 0:
            return [
                f"🎯 {bold('Contest Starting Soon!')} 🎯",
                "",
                f"⏰ Contest starts in {bold(_plural_hours(reminder.hours_before))}",
                f"📅 Start time: {when}",
                f"🚀 Get ready for the ${symbol} contest!",
            ]
        return [
            f"🎉 {bold('Contest Started!')} 🎉",
            "",
            "⏰ The contest has officially begun!",
            f"📅 Start time: {when}",
            f"🚀 Good luck with ${symbol}!",
        ]
    if reminder.hours_before > 0:
        return [
            f"⏳ {bold('Contest Ending Soon!')} ⏳",
            "",
            f"⏰ Contest ends in {bold(_plural_hours(reminder.hours_before))}",
            f"📅 End time: {when}",
            f"🚀 Last chance for ${symbol}!",
        ]
    return [
        f"🏁 {bold('Contest Ended!')} 🏁",
        "",
        "⏰ The contest has officially ended!",
        f"📅 End time: {when}",
        f"🎊 Thank you for participating in the ${symbol} contest!",
    ]


def _format_markdown(alert: Alert, symbol: str) -> str:
    """Create the Markdown notification body used by the Telethon adapter."""

    def escape_md(value: str) -> str:
        for ch in r"*[`":
            value = value.replace(ch, f"\\{ch}")
        return value

    def bold(value: str) -> str:
        return f"**{value}**"

    symbol = escape_md(symbol)
    timestamp = _timestamp(alert)

    if isinstance(alert, LargePurchaseAlert):
        lines = [
            f"🚀 {bold('LARGE BUY ALERT')} 🚀",
            DIVIDER,
            f"💰 {bold('Amount:')} {format_token_amount(alert.amount)} ${symbol} (${format_usd(alert.usd_value)})",
            f"💵 {bold('Price:')} ${format_price(alert.unit_price)}",
            f"👤 {bold('Buyer:')} `{truncate_address(alert.buyer)}`",
            f"🕐 {bold('Time:')} {timestamp}",
            f"🔗 {bold('Transaction:')} [View on Solscan]({_tx_link(alert.signature)})",
        ]
    elif isinstance(alert, MilestoneAlert):
        lines = [
            f"🎯 {bold('MARKET CAP MILESTONE')} 🎯",
            DIVIDER,
            f"🏆 ${symbol} reached {bold('$' + format_market_cap(alert.milestone))}",
            f"📈 {bold('Current:')} ${format_market_cap(alert.market_cap)}",
            f"🕐 {bold('Time:')} {timestamp}",
        ]
    elif isinstance(alert, NewHolderEvent):
        lines = [
            f"🆕 {bold('NEW HOLDER')}",
            DIVIDER,
            f"👤 {bold('Wallet:')} `{truncate_address(alert.owner)}`",
            f"💰 {bold('Balance:')} {format_token_amount(alert.balance)} ${symbol}",
            f"🕐 {bold('Time:')} {timestamp}",
            f"🔗 {bold('Transaction:')} [View on Solscan]({_tx_link(alert.signature)})",
        ]
    elif isinstance(alert, TickerUpdate):
        lines = [f"📊 {bold(escape_md(alert.text))}"]
    elif isinstance(alert, ContestReminder):
        lines = _reminder_lines(alert, symbol, bold)
    else:
        raise TypeError(f"Unsupported alert type: {type(alert).__name__}")

    return "\n".join(lines)


def _format_html(alert: Alert, symbol: str) -> str:
    """Create the HTML notification body used by the Bot API adapter."""

    def bold(value: str) -> str:
        return f"<b>{value}</b>"

    def link(url: str, label: str) -> str:
        return f"<a href=\"{html.escape(url)}\">{html.escape(label)}</a>"

    symbol = html.escape(symbol)
    timestamp = html.escape(_timestamp(alert))

    if isinstance(alert, LargePurchaseAlert):
        parts = [
            f"🚀 {bold('LARGE BUY ALERT')} 🚀",
            DIVIDER,
            f"💰 {bold('Amount:')} {format_token_amount(alert.amount)} ${symbol} (${format_usd(alert.usd_value)})",
            f"💵 {bold('Price:')} ${format_price(alert.unit_price)}",
            f"👤 {bold('Buyer:')} <code>{html.escape(truncate_address(alert.buyer))}</code>",
            f"🕐 {bold('Time:')} {timestamp}",
            f"🔗 {bold('Transaction:')} {link(_tx_link(alert.signature), 'View on Solscan')}",
        ]
    elif isinstance(alert, MilestoneAlert):
        parts = [
            f"🎯 {bold('MARKET CAP MILESTONE')} 🎯",
            DIVIDER,
            f"🏆 ${symbol} reached {bold('$' + format_market_cap(alert.milestone))}",
            f"📈 {bold('Current:')} ${format_market_cap(alert.market_cap)}",
            f"🕐 {bold('Time:')} {timestamp}",
        ]
    elif isinstance(alert, NewHolderEvent):
        parts = [
            f"🆕 {bold('NEW HOLDER')}",
            DIVIDER,
            f"👤 {bold('Wallet:')} <code>{html.escape(truncate_address(alert.owner))}</code>",
            f"💰 {bold('Balance:')} {format_token_amount(alert.balance)} ${symbol}",
            f"🕐 {bold('Time:')} {timestamp}",
            f"🔗 {bold('Transaction:')} {link(_tx_link(alert.signature), 'View on Solscan')}",
        ]
    elif isinstance(alert, TickerUpdate):
        parts = [f"📊 {bold(html.escape(alert.text))}"]
    elif isinstance(alert, ContestReminder):
        parts = _reminder_lines(alert, symbol, bold)
    else:
        raise TypeError(f"Unsupported alert type: {type(alert).__name__}")

    return "\n".join(parts)


def format_notification(alert: Alert, token_symbol: str, mode: str) -> str:
    """Return the notification formatted for the requested mode."""

    if mode == "markdown":
        return _format_markdown(alert, token_symbol)
    if mode == "html":
        return _format_html(alert, token_symbol)
    raise ValueError(f"Unsupported notification format: {mode}")


def build_formatter(token_symbol: str, mode: str) -> Callable[[Alert], str]:
    """Bind symbol and mode so the core dispatcher only sees ``alert -> text``."""

    if mode not in {"markdown", "html"}:
        raise ValueError(f"Unsupported notification format: {mode}")

    def _format(alert: Alert) -> str:
        return format_notification(alert, token_symbol, mode)

    return _format

"""Application entry point for the ledgerwatch monitor."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import os
import signal
from logging.handlers import RotatingFileHandler
from typing import List, Optional, Tuple

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.dexscreener import DexScreenerClient
from adapters.notification_formatting import build_formatter, build_ticker_formatter
from adapters.scheduler import AsyncioScheduler
from adapters.solana_rpc import TOKEN_PROGRAM_ID, SolanaLogsSubscription, SolanaRpcClient
from adapters.telegram_bot_notifier import TelegramBotNotifier
from adapters.telegram_notifier import TelegramSessionNotifier
from core.addresses import normalize_address
from core.alerts import LargePurchaseAlerts, MarketCapMilestones
from core.event_bus import EventChannel
from core.holders import FirstHolderTracker
from core.models import (
    ContestReminder,
    LargePurchaseAlert,
    MilestoneAlert,
    NewHolderEvent,
    PurchaseEvent,
    TickerUpdate,
    TransferEvent,
)
from core.notify import AlertDispatcher, ChatTitleSync
from core.pipeline import TransferPipeline
from core.purchases import PurchaseClassifier
from core.reminders import ContestReminders
from core.ticker import PriceTicker
from core.resolver import TransactionResolver

NAME = "LEDGERWATCH"
FONT = "tarty-1"

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: List[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> List[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", True):
        return []
    names = redact_cfg.get("patterns", ["SOLANA_RPC_WS", "SOLANA_RPC_HTTP", "BOT_API", "API_HASH"])
    values = []
    for name in names:
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", True):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: List[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/ledgerwatch.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


async def _build_notifier() -> Tuple[object, str, Optional[object]]:
    """Return (notifier, formatting mode, telethon client or None)."""

    # Select the notification adapter based on configuration to keep the core
    # independent from delivery details.
    if settings.NOTIFICATION_METHOD == "bot":
        bot_token = os.getenv("BOT_API")
        if not bot_token:
            raise RuntimeError("BOT_API is required when notification_method=bot")
        return TelegramBotNotifier(bot_token), "html", None

    if settings.NOTIFICATION_METHOD == "session":
        from client import build_client
        from get_session import ensure_authorized

        client = build_client()
        await client.connect()
        try:
            await ensure_authorized(client)
        except RuntimeError:
            await client.disconnect()
            raise
        return TelegramSessionNotifier(client), "markdown", client

    raise RuntimeError("notification_method must be 'bot' or 'session'")


async def _run_async() -> None:
    token_mint = normalize_address(settings.TOKEN_MINT)
    if not token_mint:
        raise RuntimeError("token.mint is missing or not a valid address")
    if not settings.SOLANA_RPC_WS:
        raise RuntimeError("SOLANA_RPC_WS is required in environment")

    transfers: EventChannel[TransferEvent] = EventChannel("transfer")
    purchases: EventChannel[PurchaseEvent] = EventChannel("purchase")
    new_holders: EventChannel[NewHolderEvent] = EventChannel("new_holder")
    large_buys: EventChannel[LargePurchaseAlert] = EventChannel("large_purchase")
    milestones: EventChannel[MilestoneAlert] = EventChannel("milestone")
    reminders: EventChannel[ContestReminder] = EventChannel("contest_reminder")
    ticker_updates: EventChannel[TickerUpdate] = EventChannel("ticker")

    rpc = SolanaRpcClient(settings.SOLANA_RPC_HTTP, commitment=settings.RPC_COMMITMENT)
    await rpc.open()
    subscription = SolanaLogsSubscription(settings.SOLANA_RPC_WS, commitment=settings.RPC_COMMITMENT)
    market = DexScreenerClient(settings.DEXSCREENER_CHAIN, settings.DEXSCREENER_PAIR)
    scheduler = AsyncioScheduler()

    notifier, mode, telegram_client = await _build_notifier()
    LOGGER.info("Selected notification method - %s", settings.NOTIFICATION_METHOD)

    dispatcher = AlertDispatcher(notifier, settings.NOTIFICATION_DESTINATION)
    formatter = build_formatter(settings.TOKEN_SYMBOL, mode)
    dispatcher.forward(large_buys, formatter)
    dispatcher.forward(milestones, formatter)
    dispatcher.forward(reminders, formatter)
    if settings.NEW_HOLDER_ALERTS:
        dispatcher.forward(new_holders, formatter)

    title_sync: Optional[ChatTitleSync] = None
    ticker_dispatcher: Optional[AlertDispatcher] = None
    if settings.TICKER_ENABLED:
        ticker_destination = settings.TICKER_DESTINATION or settings.NOTIFICATION_DESTINATION
        if settings.TICKER_MODE == "title":
            title_sync = ChatTitleSync(notifier, ticker_destination)
            title_sync.follow(ticker_updates)
        elif settings.TICKER_MODE == "message":
            ticker_dispatcher = AlertDispatcher(notifier, ticker_destination)
            ticker_dispatcher.forward(ticker_updates, formatter)
        else:
            LOGGER.warning("Unknown ticker mode %r - ticker updates will not be delivered", settings.TICKER_MODE)

    pipeline = TransferPipeline(
        subscription=subscription,
        resolver=TransactionResolver(rpc, token_mint),
        transfers=transfers,
        program_filter=TOKEN_PROGRAM_ID,
    )
    classifier = PurchaseClassifier(transfers, purchases, settings.POOL_ACCOUNTS)
    tracker = FirstHolderTracker(transfers, new_holders)
    large_buy_alerts = LargePurchaseAlerts(purchases, large_buys, market, settings.LARGE_BUY_USD)
    milestone_tracker = MarketCapMilestones(
        market,
        milestones,
        settings.MARKET_CAP_MILESTONES,
        scheduler=scheduler,
        interval_seconds=settings.MILESTONE_INTERVAL_SECONDS,
    )
    contest = ContestReminders(scheduler, reminders, settings.CONTEST_START, settings.CONTEST_END)
    ticker = PriceTicker(
        market,
        ticker_updates,
        build_ticker_formatter(settings.TOKEN_SYMBOL),
        scheduler=scheduler,
        interval_seconds=settings.TICKER_INTERVAL_SECONDS,
    )

    # Consumers subscribe before the feed starts so no early transfer is missed.
    components = {
        "buy detector": classifier.start(),
        "new holder detector": tracker.start(),
        "large buy alerts": large_buy_alerts.start(),
        "market cap milestones": milestone_tracker.start(),
        "contest reminders": contest.start(),
        "price ticker": ticker.start() if settings.TICKER_ENABLED else False,
    }
    for name, started in components.items():
        LOGGER.info("%s: %s", name, "enabled" if started else "disabled")

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_event.set)

    try:
        if not await pipeline.start():
            raise RuntimeError("Could not subscribe to the ledger feed")
        LOGGER.info("Monitoring token %s. Press Ctrl+C to stop.", token_mint)
        await stop_event.wait()
    finally:
        LOGGER.info("Shutting down")
        await pipeline.stop()
        ticker.stop()
        contest.stop()
        milestone_tracker.stop()
        large_buy_alerts.stop()
        tracker.stop()
        classifier.stop()
        scheduler.cancel_all()
        dispatcher.close()
        if title_sync is not None:
            title_sync.close()
        if ticker_dispatcher is not None:
            ticker_dispatcher.close()
        await rpc.close()
        await market.close()
        if isinstance(notifier, TelegramBotNotifier):
            await notifier.close()
        if telegram_client is not None:
            await telegram_client.disconnect()
        LOGGER.info(
            "Stopped: transfers=%s, new holders=%s, notifications sent=%s failed=%s",
            pipeline.emitted_count,
            tracker.new_holder_count,
            dispatcher.sent,
            dispatcher.failed,
        )


def _run() -> None:
    _print_banner()
    _configure_logging()
    LOGGER.info("Starting ledgerwatch")
    asyncio.run(_run_async())


def _login(method: Optional[str]) -> None:
    _print_banner()
    _configure_logging()
    from get_session import login

    asyncio.run(login(method))


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="ledgerwatch")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the monitor")
    login_parser = subparsers.add_parser("login", help="Authorize a Telegram user session for session notifications")
    login_parser.add_argument("--method", choices=["qr", "phone"], help="Defaults to LOGIN_METHOD or qr")

    args = parser.parse_args(argv)
    if args.command == "login":
        _login(args.method)
        return
    _run()


if __name__ == "__main__":
    main()

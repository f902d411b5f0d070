"""Static configuration for ledgerwatch.

Non-secret settings (token, pools, thresholds, notifications, logging) live
in a single JSON file for quick edits without touching Python. Secrets such
as RPC URLs with API keys and bot tokens come from the environment / .env.
"""

import json
import os

from dotenv import load_dotenv

from core.config import (
    parse_datetime,
    parse_interval,
    parse_milestones,
    parse_pool_accounts,
    parse_threshold,
)

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.environ.get("LEDGERWATCH_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))

load_dotenv()


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Tracked asset. The mint address is required; the symbol is cosmetic.
_token = _CONFIG.get("token", {})
TOKEN_MINT = (_token.get("mint") or os.getenv("TOKEN_MINT") or "").strip()
TOKEN_SYMBOL = _token.get("symbol") or os.getenv("TOKEN_SYMBOL") or "TOKEN"

# RPC endpoints usually embed an API key, so they are read from the environment.
SOLANA_RPC_WS = (os.getenv("SOLANA_RPC_WS") or "").strip()
SOLANA_RPC_HTTP = (os.getenv("SOLANA_RPC_HTTP") or SOLANA_RPC_WS.replace("wss://", "https://", 1)).strip()
RPC_COMMITMENT = _CONFIG.get("rpc", {}).get("commitment", "confirmed")

# Liquidity pool accounts; invalid entries are dropped with a warning.
POOL_ACCOUNTS = parse_pool_accounts(_CONFIG.get("pool_accounts") or os.getenv("AMM_VAULTS"))

# Market data source (DexScreener chain slug + pair address).
_market = _CONFIG.get("market_data", {})
DEXSCREENER_CHAIN = _market.get("chain", "solana")
DEXSCREENER_PAIR = _market.get("pair", "")

# Alerting thresholds. Each one disables only its own component when invalid.
_alerts = _CONFIG.get("alerts", {})
LARGE_BUY_USD = parse_threshold(_alerts.get("large_buy_usd"))
MARKET_CAP_MILESTONES = parse_milestones(_alerts.get("market_cap_milestones"))
MILESTONE_INTERVAL_SECONDS = parse_interval(_alerts.get("milestone_interval_seconds"), 60.0, "milestone")
NEW_HOLDER_ALERTS = bool(_alerts.get("new_holders", True))

# Price ticker: a status line kept in a chat title or posted as a message
# whenever it changes.
_ticker = _CONFIG.get("ticker", {})
TICKER_ENABLED = bool(_ticker.get("enabled", False))
TICKER_INTERVAL_SECONDS = parse_interval(_ticker.get("interval_seconds"), 180.0, "ticker")
TICKER_MODE = _ticker.get("mode", "title")
TICKER_DESTINATION = str(_ticker.get("destination") or "")

# Optional contest reminders.
_contest = _CONFIG.get("contest", {})
CONTEST_START = parse_datetime(_contest.get("start"))
CONTEST_END = parse_datetime(_contest.get("end"))

# Notification method switches adapters without changing core logic.
# - "bot": Telegram Bot API, requires BOT_API in the environment
# - "session": Telethon user session, destination "me" is Saved Messages
_notifications = _CONFIG.get("notifications", {})
NOTIFICATION_METHOD = _notifications.get("notification_method", "bot")
NOTIFICATION_DESTINATION = str(_notifications.get("destination", "me"))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})

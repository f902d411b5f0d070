"""Telethon client factory for session-based alert delivery.

Bot delivery does not touch this module. When notifications are sent from a
user account, app.py builds the client here, connects it, authorizes it via
get_session.authorize and disconnects it on shutdown.
"""

from __future__ import annotations

import logging
import os
from typing import Optional, Tuple

from dotenv import load_dotenv
from telethon import TelegramClient

LOGGER = logging.getLogger(__name__)

DEFAULT_SESSION_NAME = "ledgerwatch"


def read_credentials() -> Tuple[int, str]:
    """Return (api_id, api_hash) from the environment or raise RuntimeError."""
    load_dotenv()
    api_id = (os.getenv("API_ID") or "").strip()
    api_hash = (os.getenv("API_HASH") or "").strip()
    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")
    try:
        return int(api_id), api_hash
    except ValueError as exc:
        raise RuntimeError("API_ID must be an integer") from exc


def build_client(session_name: Optional[str] = None) -> TelegramClient:
    api_id, api_hash = read_credentials()
    name = session_name or os.getenv("SESSION_NAME") or DEFAULT_SESSION_NAME
    LOGGER.info("Initializing Telegram session client (session=%s)", name)
    # Alerts are only sent, never received, so skip update handling.
    return TelegramClient(
        name,
        api_id,
        api_hash,
        receive_updates=False,
        connection_retries=5,
    )

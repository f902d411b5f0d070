"""Telegram Bot API notification adapter.

Uses the Bot API for delivery so alerts can be routed to a group, channel
or bot chat without a user session. The same bot can also keep a chat title
in sync with the price ticker when it is an admin allowed to change info.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import aiohttp

LOGGER = logging.getLogger(__name__)


class TelegramBotNotifier:
    """Notifier adapter that sends messages via the Telegram Bot API."""

    def __init__(self, bot_token: str, timeout_sec: int = 10) -> None:
        self._bot_token = bot_token
        self._timeout = aiohttp.ClientTimeout(total=timeout_sec)
        self._session: Optional[aiohttp.ClientSession] = None

    def _endpoint(self, method: str) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"https://api.telegram.org/bot{self._bot_token}/{method}"

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def _post(self, method: str, payload: dict) -> bool:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        try:
            async with self._session.post(self._endpoint(method), json=payload) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    LOGGER.error("Bot API %s error %s: %s", method, resp.status, body)
                    return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            LOGGER.error("Error calling Bot API %s: %s", method, exc)
            return False
        return True

    async def send(self, destination: str, text: str) -> bool:
        """Send the formatted HTML message; returns False on any failure."""

        payload = {
            "chat_id": destination,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        return await self._post("sendMessage", payload)

    async def set_title(self, destination: str, title: str) -> bool:
        return await self._post("setChatTitle", {"chat_id": destination, "title": title})

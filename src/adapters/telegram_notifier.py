"""Telegram user-session notification adapter.

Formats nothing itself; sends pre-rendered Markdown through a Telethon
client to any chat the account can write to ("me" is Saved Messages), and
renames groups or channels it administers for the price ticker.
"""

from __future__ import annotations

import logging

from telethon import errors, functions, types

LOGGER = logging.getLogger(__name__)


class TelegramSessionNotifier:
    """Notifier adapter that sends messages from the logged-in user account."""

    def __init__(self, client) -> None:
        self._client = client

    async def send(self, destination: str, text: str) -> bool:
        """Send the message; returns False on any Telegram error."""

        target = _coerce_destination(destination)
        try:
            await self._client.send_message(target, text, parse_mode="md", link_preview=False)
        except (errors.RPCError, ValueError, ConnectionError) as exc:
            LOGGER.error("Error sending Telegram message to %s: %s", destination, exc)
            return False
        return True

    async def set_title(self, destination: str, title: str) -> bool:
        """Rename a group or channel the account administers."""

        try:
            entity = await self._client.get_entity(_coerce_destination(destination))
            if isinstance(entity, types.Channel):
                await self._client(functions.channels.EditTitleRequest(channel=entity, title=title))
            elif isinstance(entity, types.Chat):
                await self._client(functions.messages.EditChatTitleRequest(chat_id=entity.id, title=title))
            else:
                LOGGER.error("Cannot rename %s - not a group or channel", destination)
                return False
        except (errors.RPCError, ValueError, ConnectionError) as exc:
            LOGGER.error("Error renaming Telegram chat %s: %s", destination, exc)
            return False
        return True


def _coerce_destination(destination: str):
    # Numeric chat ids must be passed as int so Telethon resolves the peer.
    value = str(destination).strip()
    try:
        return int(value)
    except ValueError:
        return value or "me"

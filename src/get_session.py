"""Telegram user-session login for session-based alert delivery.

``ledgerwatch login`` is the only interactive step: it creates the local
.session file once. The monitor itself never prompts; it refuses to start
session delivery until that file is authorized.
"""

import asyncio
import logging
import os
from getpass import getpass
from typing import Optional

import qrcode
from telethon import TelegramClient, errors

from client import build_client

LOGGER = logging.getLogger(__name__)

LOGIN_METHODS = ("qr", "phone")
QR_ATTEMPTS = 3
QR_TIMEOUT_SECONDS = 60


def _show_qr(url: str) -> None:
    code = qrcode.QRCode(border=1)
    code.add_data(url)
    code.make(fit=True)
    code.print_ascii(invert=True)


def _cloud_password() -> str:
    return os.getenv("TELEGRAM_PASSWORD") or getpass("Telegram cloud password: ")


async def _login_with_qr(client: TelegramClient) -> None:
    qr_login = await client.qr_login()
    for attempt in range(1, QR_ATTEMPTS + 1):
        _show_qr(qr_login.url)
        print(f"Scan with Telegram > Settings > Devices (attempt {attempt}/{QR_ATTEMPTS})")
        try:
            await qr_login.wait(timeout=QR_TIMEOUT_SECONDS)
            return
        except asyncio.TimeoutError:
            LOGGER.warning("QR code expired, generating a new one")
            await qr_login.recreate()
    raise RuntimeError("QR login was not confirmed in time")


async def _login_with_phone(client: TelegramClient) -> None:
    phone = os.getenv("PHONE") or input("Phone number (international format): ").strip()
    await client.send_code_request(phone)
    await client.sign_in(phone=phone, code=input("Login code: ").strip())


def resolve_login_method(requested: Optional[str] = None) -> str:
    method = (requested or os.getenv("LOGIN_METHOD") or "qr").strip().lower()
    if method not in LOGIN_METHODS:
        raise ValueError(f"Unknown login method {method!r}, expected one of {', '.join(LOGIN_METHODS)}")
    return method


async def ensure_authorized(client: TelegramClient) -> None:
    """Fail fast when the session file has not been authorized yet."""

    if not await client.is_user_authorized():
        raise RuntimeError("Telegram session is not authorized - run `ledgerwatch login` first")


async def login(method: Optional[str] = None) -> None:
    """Create or refresh the local .session file, then disconnect."""

    chosen = resolve_login_method(method)
    client = build_client()
    await client.connect()
    try:
        if await client.is_user_authorized():
            LOGGER.info("Session already authorized")
        else:
            try:
                if chosen == "phone":
                    await _login_with_phone(client)
                else:
                    await _login_with_qr(client)
            except errors.SessionPasswordNeededError:
                await client.sign_in(password=_cloud_password())
        me = await client.get_me()
        LOGGER.info("Logged in as: %s", me.first_name)
    finally:
        await client.disconnect()


if __name__ == "__main__":
    asyncio.run(login())

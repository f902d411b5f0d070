"""Solana JSON-RPC adapters.

Implements the core TransactionFetcherPort over HTTP and the
LedgerSubscriptionPort over the RPC websocket (``logsSubscribe``).
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, List, Optional

import aiohttp

from core.ports import SignatureCallback

LOGGER = logging.getLogger(__name__)

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
DEFAULT_COMMITMENT = "confirmed"
RECONNECT_DELAY_SECONDS = 2.0


class SolanaRpcClient:
    """Minimal HTTP JSON-RPC client for transaction lookups."""

    def __init__(self, url: str, commitment: str = DEFAULT_COMMITMENT, timeout_sec: int = 12) -> None:
        self.url = url
        self.commitment = commitment
        self.timeout = aiohttp.ClientTimeout(total=timeout_sec)
        self._session: Optional[aiohttp.ClientSession] = None
        self._id = 1

    async def __aenter__(self) -> "SolanaRpcClient":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def open(self) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self.timeout)

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def call(self, method: str, params: List[Any]) -> Any:
        if self._session is None:
            raise RuntimeError("RPC session is not initialized")
        payload = {"jsonrpc": "2.0", "id": self._id, "method": method, "params": params}
        self._id += 1

        async with self._session.post(self.url, json=payload) as resp:
            data = await resp.json(content_type=None)
        if not isinstance(data, dict):
            raise RuntimeError(f"Unexpected RPC response: {data!r:.200}")
        if "error" in data:
            raise RuntimeError(f"RPC error: {data['error']}")
        return data.get("result")

    async def get_transaction(self, signature: str) -> Optional[dict]:
        """Return the transaction record, or None if it is not available."""

        options = {
            "encoding": "json",
            "commitment": self.commitment,
            "maxSupportedTransactionVersion": 0,
        }
        try:
            return await self.call("getTransaction", [signature, options])
        except (aiohttp.ClientError, asyncio.TimeoutError, RuntimeError, ValueError) as exc:
            LOGGER.debug("getTransaction failed for %s: %s", signature, exc)
            return None


class SolanaLogsSubscription:
    """Websocket ``logsSubscribe`` feed that announces signatures.

    The subscription reconnects on its own after connection loss. Nothing is
    replayed across reconnects; the feed is a live sample, not a queue.
    """

    def __init__(self, ws_url: str, commitment: str = DEFAULT_COMMITMENT) -> None:
        self.ws_url = ws_url
        self.commitment = commitment
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self.connected = False

    async def subscribe(self, program_filter: str, callback: SignatureCallback) -> None:
        if self._task is not None and not self._task.done():
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.ensure_future(self._run(program_filter, callback))

    async def unsubscribe(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self.connected = False

    def _subscribe_message(self, program_filter: str) -> dict:
        return {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "logsSubscribe",
            "params": [{"mentions": [program_filter]}, {"commitment": self.commitment}],
        }

    async def _run(self, program_filter: str, callback: SignatureCallback) -> None:
        timeout = aiohttp.ClientTimeout(total=None)
        while not self._stop_event.is_set():
            try:
                async with aiohttp.ClientSession(timeout=timeout) as session:
                    async with session.ws_connect(self.ws_url, heartbeat=20) as ws:
                        await ws.send_json(self._subscribe_message(program_filter))
                        self.connected = True
                        LOGGER.info("Connected to Solana websocket, subscribed to %s", program_filter)
                        while not self._stop_event.is_set():
                            try:
                                msg = await ws.receive(timeout=30)
                            except asyncio.TimeoutError:
                                continue
                            if msg.type in {aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR}:
                                break
                            if msg.type != aiohttp.WSMsgType.TEXT:
                                continue
                            self._dispatch(msg.data, callback)
            except asyncio.CancelledError:
                raise
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
                LOGGER.warning("Solana websocket error: %s", exc)
            except Exception:
                LOGGER.exception("Unexpected Solana websocket failure, reconnecting")
            self.connected = False
            if not self._stop_event.is_set():
                await asyncio.sleep(RECONNECT_DELAY_SECONDS)

    def _dispatch(self, raw: str, callback: SignatureCallback) -> None:
        try:
            data = json.loads(raw)
        except ValueError:
            LOGGER.debug("Ignoring non-JSON websocket frame")
            return
        if not isinstance(data, dict):
            LOGGER.debug("Ignoring non-object websocket frame")
            return
        if "result" in data and "id" in data:
            LOGGER.info("Subscription confirmed - id %s", data["result"])
            return
        if data.get("method") != "logsNotification":
            return

        params = data.get("params")
        result = params.get("result") if isinstance(params, dict) else None
        value = result.get("value") if isinstance(result, dict) else None
        if not isinstance(value, dict):
            LOGGER.debug("Ignoring malformed logs notification: %.200s", raw)
            return
        signature = value.get("signature")
        # Failed transactions never move balances.
        if not isinstance(signature, str) or not signature or value.get("err") is not None:
            return
        try:
            callback(signature, result.get("context"))
        except Exception:
            LOGGER.exception("Signature callback failed for %s", signature)

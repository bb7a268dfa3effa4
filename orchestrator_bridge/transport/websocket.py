"""Realtime channel (Transport B) over a persistent WebSocket.

A background task owns the connection: it connects, announces itself with a
ping, dispatches every decoded ``{type, ...}`` frame to the listeners and,
when the connection drops or cannot be opened, sleeps a fixed backoff before
trying again. The task runs until ``close()``.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import WebSocketException
from websockets.protocol import State

from orchestrator_bridge.config import settings
from orchestrator_bridge.constants import (
    MSG_PING,
    READY_STATE_CLOSED,
    WS_CONNECT_WAIT_SECONDS,
    WS_RECONNECT_DELAY_SECONDS,
)
from orchestrator_bridge.errors import TransportUnreachableError
from orchestrator_bridge.transport.base import Transport

logger = logging.getLogger(__name__)


class WebSocketTransport(Transport):
    def __init__(
        self,
        url: str | None = None,
        reconnect_delay: float = WS_RECONNECT_DELAY_SECONDS,
        connect_wait: float = WS_CONNECT_WAIT_SECONDS,
    ) -> None:
        super().__init__()
        self.url = url or settings.ws_url
        self.reconnect_delay = reconnect_delay
        self.connect_wait = connect_wait
        self._ws: ClientConnection | None = None
        self._connected = asyncio.Event()
        self._run_task: asyncio.Task[None] | None = None
        self._closing = False
        self.connection_count = 0

    @property
    def is_connected(self) -> bool:
        return self._ws is not None and self._ws.state is State.OPEN

    async def start(self) -> None:
        if self._closing:
            raise TransportUnreachableError("WebSocket transport is closed")
        if self._run_task is None or self._run_task.done():
            self._run_task = asyncio.create_task(self._run())

    async def send(self, message: dict[str, Any]) -> None:
        await self.start()
        try:
            await asyncio.wait_for(self._connected.wait(), timeout=self.connect_wait)
        except asyncio.TimeoutError:
            raise TransportUnreachableError(
                f"No realtime connection to {self.url}"
            ) from None
        ws = self._ws
        if ws is None:
            raise TransportUnreachableError(f"No realtime connection to {self.url}")
        try:
            await ws.send(json.dumps(message))
        except WebSocketException as e:
            raise TransportUnreachableError(f"Realtime send failed: {e}") from e

    async def query_status(self) -> dict[str, Any]:
        ws = self._ws
        if ws is None:
            return {"isConnected": False, "readyState": READY_STATE_CLOSED}
        return {"isConnected": ws.state is State.OPEN, "readyState": int(ws.state)}

    async def close(self) -> None:
        self._closing = True
        if self._run_task is not None:
            self._run_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._run_task
            self._run_task = None
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        self._connected.clear()

    async def _run(self) -> None:
        while not self._closing:
            try:
                async with connect(self.url) as ws:
                    self._ws = ws
                    self.connection_count += 1
                    self._connected.set()
                    logger.info("Realtime channel connected: %s", self.url)
                    await ws.send(json.dumps({"type": MSG_PING, "from": "bridge"}))
                    async for raw in ws:
                        self._handle_frame(raw)
                logger.info("Realtime channel closed: %s", self.url)
            except asyncio.CancelledError:
                raise
            except (OSError, asyncio.TimeoutError, WebSocketException) as e:
                logger.warning("Realtime channel error (%s): %s", self.url, e)
            finally:
                self._ws = None
                self._connected.clear()

            if self._closing:
                break
            logger.debug("Reconnecting in %.1fs", self.reconnect_delay)
            await asyncio.sleep(self.reconnect_delay)

    def _handle_frame(self, raw: str | bytes) -> None:
        try:
            message = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Realtime channel received invalid JSON")
            return
        if not isinstance(message, dict) or not isinstance(message.get("type"), str):
            logger.debug("Ignoring untyped realtime frame")
            return
        self._dispatch(message)

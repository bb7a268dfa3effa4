"""WebSocketTransport against a local relay server."""

from __future__ import annotations

import asyncio
import json
import socket
from typing import Any, Callable

import pytest
from websockets.asyncio.server import ServerConnection, serve

from orchestrator_bridge.errors import TransportUnreachableError
from orchestrator_bridge.events import EventManager
from orchestrator_bridge.transport.websocket import WebSocketTransport


class FakeRelay:
    """Answers the bridge's ping with some noise and one real event."""

    def __init__(self, drop_first_connection: bool = False) -> None:
        self.received: list[dict[str, Any]] = []
        self.connections = 0
        self.drop_first_connection = drop_first_connection

    async def handler(self, ws: ServerConnection) -> None:
        self.connections += 1
        if self.drop_first_connection and self.connections == 1:
            await ws.recv()
            await ws.close()
            return
        async for raw in ws:
            message = json.loads(raw)
            self.received.append(message)
            if message["type"] == "ping":
                await ws.send("{not json")
                await ws.send(json.dumps({"data": "untyped"}))
                await ws.send(
                    json.dumps(
                        {"type": "ASSET_RESULT", "data": {"name": "a", "content": "hello"}}
                    )
                )


async def eventually(predicate: Callable[[], bool], timeout: float = 3.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


def unused_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


# ── 1. Connect, receive, send ───────────────────────────────────


@pytest.mark.asyncio
async def test_round_trip_through_a_live_relay():
    relay = FakeRelay()
    async with serve(relay.handler, "127.0.0.1", 0) as server:
        port = next(iter(server.sockets)).getsockname()[1]
        transport = WebSocketTransport(f"ws://127.0.0.1:{port}/", reconnect_delay=0.05)
        events = EventManager(transport)
        received: list[Any] = []
        events.subscribe("ASSET_RESULT", received.append)

        try:
            await transport.start()
            await eventually(lambda: received)

            assert relay.received[0] == {"type": "ping", "from": "bridge"}
            assert received == [{"name": "a", "content": "hello"}]
            assert await transport.query_status() == {"isConnected": True, "readyState": 1}

            await transport.send({"type": "GET_ASSET", "name": "a"})
            await eventually(lambda: len(relay.received) == 2)
            assert relay.received[1] == {"type": "GET_ASSET", "name": "a"}
        finally:
            await transport.close()

        status = await transport.query_status()
        assert status["isConnected"] is False


# ── 2. Reconnect ────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_reconnects_after_the_relay_drops_the_connection():
    relay = FakeRelay(drop_first_connection=True)
    async with serve(relay.handler, "127.0.0.1", 0) as server:
        port = next(iter(server.sockets)).getsockname()[1]
        transport = WebSocketTransport(f"ws://127.0.0.1:{port}/", reconnect_delay=0.05)
        try:
            await transport.start()
            await eventually(lambda: transport.connection_count >= 2)
            await eventually(lambda: relay.received)
            assert relay.received[0]["type"] == "ping"
        finally:
            await transport.close()


# ── 3. No relay ─────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_send_without_relay_raises_unreachable():
    transport = WebSocketTransport(
        f"ws://127.0.0.1:{unused_port()}/", reconnect_delay=0.05, connect_wait=0.2
    )
    try:
        with pytest.raises(TransportUnreachableError):
            await transport.send({"type": "GET_ASSET", "name": "a"})
        assert await transport.query_status() == {"isConnected": False, "readyState": 3}
    finally:
        await transport.close()


@pytest.mark.asyncio
async def test_start_after_close_is_refused():
    transport = WebSocketTransport(f"ws://127.0.0.1:{unused_port()}/")
    await transport.close()

    with pytest.raises(TransportUnreachableError):
        await transport.start()


# ── 4. Malformed frames ─────────────────────────────────────────


@pytest.mark.asyncio
async def test_frame_with_non_string_type_does_not_kill_the_listener():
    async def handler(ws: ServerConnection) -> None:
        await ws.recv()  # ping
        await ws.send(json.dumps({"type": ["bad"], "data": 0}))
        await ws.send(json.dumps({"type": {"also": "bad"}}))
        await ws.send(json.dumps({"type": "GOOD", "data": 1}))
        await ws.wait_closed()

    async with serve(handler, "127.0.0.1", 0) as server:
        port = next(iter(server.sockets)).getsockname()[1]
        transport = WebSocketTransport(f"ws://127.0.0.1:{port}/", reconnect_delay=0.05)
        events = EventManager(transport)
        received: list[Any] = []
        events.subscribe("GOOD", received.append)
        try:
            await transport.start()
            await eventually(lambda: received)

            assert received == [1]
            assert transport.connection_count == 1
            assert await transport.query_status() == {"isConnected": True, "readyState": 1}
        finally:
            await transport.close()


@pytest.mark.asyncio
async def test_failing_listener_keeps_the_connection_alive():
    async def handler(ws: ServerConnection) -> None:
        await ws.recv()
        await ws.send(json.dumps({"type": "FIRST"}))
        await ws.send(json.dumps({"type": "SECOND"}))
        await ws.wait_closed()

    async with serve(handler, "127.0.0.1", 0) as server:
        port = next(iter(server.sockets)).getsockname()[1]
        transport = WebSocketTransport(f"ws://127.0.0.1:{port}/", reconnect_delay=0.05)
        seen: list[str] = []

        def listener(message: dict[str, Any]) -> None:
            seen.append(message["type"])
            if message["type"] == "FIRST":
                raise RuntimeError("listener bug")

        transport.add_listener(listener)
        try:
            await transport.start()
            await eventually(lambda: len(seen) == 2)

            assert seen == ["FIRST", "SECOND"]
            assert transport.connection_count == 1
        finally:
            await transport.close()

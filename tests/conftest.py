"""Shared fixtures: a fake orchestrator on both transports."""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from orchestrator_bridge.bridge import ExtendedBridge
from orchestrator_bridge.transport.memory import InMemoryTransport

Handler = Callable[[httpx.Request], httpx.Response]


def make_client(handler: Handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://orchestrator.test"
    )


def json_response(body: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json=body)


def offline(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("Connection refused", request=request)


def request_json(request: httpx.Request) -> Any:
    return json.loads(request.content.decode())


@pytest.fixture
def transport() -> InMemoryTransport:
    return InMemoryTransport()


@pytest.fixture
def offline_client() -> httpx.AsyncClient:
    return make_client(offline)


@pytest.fixture
def bridge(transport: InMemoryTransport, offline_client: httpx.AsyncClient) -> ExtendedBridge:
    """Bridge whose HTTP side is down, so every lookup falls back to the channel."""
    return ExtendedBridge(
        transport,
        http=offline_client,
        asset_timeout=0.05,
        cursor_files_timeout=0.05,
        status_timeout=0.05,
    )

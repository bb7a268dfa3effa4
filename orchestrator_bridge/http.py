"""Shared HTTP client for Transport A (the orchestrator's local HTTP API)."""

from __future__ import annotations

import httpx

from orchestrator_bridge.config import settings
from orchestrator_bridge.constants import LLM_REQUEST_TIMEOUT_SECONDS

_client: httpx.AsyncClient | None = None


def get_client() -> httpx.AsyncClient:
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(
            base_url=settings.http_base_url,
            timeout=httpx.Timeout(LLM_REQUEST_TIMEOUT_SECONDS, connect=10.0),
        )
    return _client


async def close_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None

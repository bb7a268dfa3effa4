"""LLM client: one normalized chat-completion call per invocation.

Every failure mode (unreachable backend, timeout, HTTP error, application
error, malformed body) is folded into a ``ChatResponse`` with
``success=False``; these functions never raise.
"""

from __future__ import annotations

import logging

import httpx

from orchestrator_bridge.constants import (
    LLM_REQUEST_TIMEOUT_SECONDS,
    PATH_LLM_CHAT,
    PATH_LLM_STATUS,
    STATUS_PROBE_TIMEOUT_SECONDS,
)
from orchestrator_bridge.errors import TIMEOUT_MESSAGE, UNREACHABLE_MESSAGE, ErrorKind
from orchestrator_bridge.http import get_client
from orchestrator_bridge.llm.types import ChatRequest, ChatResponse

logger = logging.getLogger(__name__)


async def send_llm_request(
    request: ChatRequest,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = LLM_REQUEST_TIMEOUT_SECONDS,
) -> ChatResponse:
    if client is None:
        client = get_client()
    logger.info(
        "Sending LLM request: model=%s messages=%d",
        request.model_id,
        len(request.messages),
    )

    try:
        response = await client.post(
            PATH_LLM_CHAT, json=request.to_payload(), timeout=timeout
        )
    except httpx.TimeoutException as e:
        logger.error("LLM request timed out after %.0fs: %s", timeout, e)
        return ChatResponse.failed(TIMEOUT_MESSAGE, ErrorKind.REQUEST_TIMEOUT)
    except (httpx.ConnectError, httpx.NetworkError) as e:
        logger.error("LLM backend unreachable: %s", e)
        return ChatResponse.failed(UNREACHABLE_MESSAGE, ErrorKind.TRANSPORT_UNREACHABLE)
    except httpx.HTTPError as e:
        logger.error("LLM request failed: %s", e)
        return ChatResponse.failed(
            str(e) or type(e).__name__, ErrorKind.CHAT_COMPLETION_FAILED
        )

    if not response.is_success:
        logger.error("LLM HTTP error %d: %s", response.status_code, response.text[:500])
        return ChatResponse.failed(
            f"HTTP {response.status_code}: {response.text}",
            ErrorKind.CHAT_COMPLETION_FAILED,
        )

    try:
        body = response.json()
    except ValueError:
        return ChatResponse.failed(
            "LLM API returned a non-JSON response", ErrorKind.INVALID_RESPONSE
        )
    if not isinstance(body, dict):
        return ChatResponse.failed(
            "LLM API returned an unexpected payload", ErrorKind.INVALID_RESPONSE
        )

    if not body.get("ok"):
        message = body.get("message") or "LLM API returned an error"
        logger.error("LLM API error: %s", message)
        return ChatResponse.failed(message, ErrorKind.CHAT_COMPLETION_FAILED)

    data = body.get("data")
    if not isinstance(data, dict):
        data = {}
    content = data.get("content") or ""
    if not content:
        return ChatResponse.failed(
            "LLM API returned an empty response", ErrorKind.CHAT_COMPLETION_FAILED
        )

    logger.info(
        "LLM response received: %d chars, tokens=%s",
        len(content),
        data.get("tokensUsed"),
    )
    return ChatResponse.ok(
        content, tokens_used=data.get("tokensUsed"), model=data.get("model")
    )


async def _probe_status(client: httpx.AsyncClient | None) -> httpx.Response | None:
    if client is None:
        client = get_client()
    try:
        return await client.get(PATH_LLM_STATUS, timeout=STATUS_PROBE_TIMEOUT_SECONDS)
    except httpx.HTTPError as e:
        logger.debug("LLM status probe failed: %s", e)
        return None


async def check_backend_reachable(*, client: httpx.AsyncClient | None = None) -> bool:
    """True if the orchestrator answers the status endpoint at all."""
    response = await _probe_status(client)
    return response is not None and response.is_success


async def check_llm_availability(*, client: httpx.AsyncClient | None = None) -> bool:
    """True only if the orchestrator reports its model runtime as running."""
    response = await _probe_status(client)
    if response is None or not response.is_success:
        return False
    try:
        body = response.json()
    except ValueError:
        return False
    if not isinstance(body, dict) or not body.get("ok"):
        return False
    data = body.get("data")
    return isinstance(data, dict) and data.get("ollamaRunning") is True

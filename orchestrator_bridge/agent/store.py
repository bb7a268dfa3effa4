"""Key-value configuration store owned by the orchestrator.

Values are opaque strings that are often JSON-encoded records; ``get``
decodes those so callers see dicts and lists.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any

import httpx

from orchestrator_bridge.constants import (
    CONFIG_STORE_TIMEOUT_SECONDS,
    PATH_STORE_GET,
    PATH_STORE_KEYS,
)
from orchestrator_bridge.errors import ConfigStoreError, ErrorKind
from orchestrator_bridge.http import get_client

logger = logging.getLogger(__name__)

_AGENT_KEY_RE = re.compile(r"^agent_(.+)_instructions$")


def agent_key(agent_id: str | int) -> str:
    """``7`` and ``"7"`` become ``"agent07"``; other strings pass through."""
    if isinstance(agent_id, int) and not isinstance(agent_id, bool):
        return f"agent{agent_id:02d}"
    text = str(agent_id).strip()
    if text.isdigit():
        return f"agent{int(text):02d}"
    return text


def agent_storage_key(agent_id: str | int) -> str:
    return f"agent_{agent_key(agent_id)}_instructions"


def agent_name_from_storage_key(key: str) -> str | None:
    match = _AGENT_KEY_RE.match(key)
    return match.group(1) if match else None


def decode_value(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return value


class ConfigStore(ABC):
    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the decoded value, or None if the key is absent."""
        ...

    @abstractmethod
    async def keys(self) -> list[str]:
        ...


class MemoryConfigStore(ConfigStore):
    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] = dict(data or {})
        self.reads: list[str] = []

    async def get(self, key: str) -> Any | None:
        self.reads.append(key)
        return decode_value(self.data.get(key))

    async def keys(self) -> list[str]:
        return list(self.data)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value


class HttpConfigStore(ConfigStore):
    """Store reached through the orchestrator's ``/api/orchestrator`` endpoints."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = CONFIG_STORE_TIMEOUT_SECONDS,
    ) -> None:
        self._client = client
        self.timeout = timeout

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client if self._client is not None else get_client()

    async def _request(self, path: str, params: dict | None = None) -> dict:
        try:
            response = await self.client.get(path, params=params, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise ConfigStoreError(
                f"Config store request timed out: {e}", kind=ErrorKind.REQUEST_TIMEOUT
            ) from e
        except httpx.HTTPError as e:
            raise ConfigStoreError(f"Config store unreachable: {e}") from e
        if not response.is_success:
            raise ConfigStoreError(
                f"Config store HTTP {response.status_code}",
                kind=ErrorKind.INVALID_RESPONSE,
            )
        try:
            body = response.json()
        except ValueError as e:
            raise ConfigStoreError(
                "Config store returned a non-JSON response",
                kind=ErrorKind.INVALID_RESPONSE,
            ) from e
        if not isinstance(body, dict):
            raise ConfigStoreError(
                "Config store returned an unexpected payload",
                kind=ErrorKind.INVALID_RESPONSE,
            )
        return body

    async def get(self, key: str) -> Any | None:
        body = await self._request(PATH_STORE_GET, params={"key": key})
        if not body.get("success") or body.get("data") is None:
            logger.debug("No value stored for key %s", key)
            return None
        return decode_value(body["data"])

    async def keys(self) -> list[str]:
        body = await self._request(PATH_STORE_KEYS)
        data = body.get("data") or []
        return [k for k in data if isinstance(k, str)]

"""Error taxonomy shared by the bridge, the LLM client and the executor.

Public entry points report failures as values tagged with an ``ErrorKind``.
The exceptions below are what internal steps raise before that conversion,
and what ``load_template`` / ``request_ai`` raise as their failure result.
"""

from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    TRANSPORT_UNREACHABLE = "transport_unreachable"
    REQUEST_TIMEOUT = "request_timeout"
    AGENT_NOT_FOUND = "agent_not_found"
    REASONING_NOT_ENABLED = "reasoning_not_enabled"
    REASONING_CONFIG_MISSING = "reasoning_config_missing"
    UNSUPPORTED_PROVIDER = "unsupported_provider"
    RUNTIME_NOT_READY = "runtime_not_ready"
    CHAT_COMPLETION_FAILED = "chat_completion_failed"
    INVALID_RESPONSE = "invalid_response"
    ASSET_LOAD_FAILED = "asset_load_failed"
    ASSET_LOAD_TIMEOUT = "asset_load_timeout"


UNREACHABLE_MESSAGE = (
    "Cannot connect to the desktop orchestrator. "
    "Please ensure the desktop app is running."
)
TIMEOUT_MESSAGE = (
    "LLM request timed out. The model might be too large "
    "or the system is under heavy load."
)
RUNTIME_NOT_READY_MESSAGE = (
    "The local model runtime is not running. "
    "Start it or check the LLM settings in the backend configuration."
)


class BridgeError(Exception):
    """Base class; ``kind`` tells callers which recovery applies."""

    kind: ErrorKind = ErrorKind.CHAT_COMPLETION_FAILED

    def __init__(self, message: str, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind

    @property
    def message(self) -> str:
        return str(self)


class TransportUnreachableError(BridgeError):
    kind = ErrorKind.TRANSPORT_UNREACHABLE


class ChatCompletionError(BridgeError):
    kind = ErrorKind.CHAT_COMPLETION_FAILED


class AssetLoadError(BridgeError):
    kind = ErrorKind.ASSET_LOAD_FAILED

    def __init__(self, name: str, message: str, kind: ErrorKind | None = None) -> None:
        super().__init__(message, kind=kind)
        self.name = name


class AssetLoadTimeout(AssetLoadError):
    kind = ErrorKind.ASSET_LOAD_TIMEOUT

    def __init__(self, name: str, timeout: float) -> None:
        super().__init__(name, f"Asset '{name}' load timed out after {timeout:g}s")
        self.timeout = timeout


class ConfigStoreError(BridgeError):
    kind = ErrorKind.TRANSPORT_UNREACHABLE


class AgentExecutionError(BridgeError):
    """Raised inside the executor pipeline; converted to a result at its edge."""


class AgentNotFound(AgentExecutionError):
    kind = ErrorKind.AGENT_NOT_FOUND


class ReasoningNotEnabled(AgentExecutionError):
    kind = ErrorKind.REASONING_NOT_ENABLED


class ReasoningConfigMissing(AgentExecutionError):
    kind = ErrorKind.REASONING_CONFIG_MISSING


class UnsupportedProvider(AgentExecutionError):
    kind = ErrorKind.UNSUPPORTED_PROVIDER

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(message)
        self.provider = provider


class RuntimeNotReady(AgentExecutionError):
    kind = ErrorKind.RUNTIME_NOT_READY

"""Agent execution: stored agent definitions turned into model invocations."""

from orchestrator_bridge.agent.coordinator import InputCoordinator
from orchestrator_bridge.agent.executor import AgentExecutor
from orchestrator_bridge.agent.models import (
    AgentConfig,
    AgentExecutionRequest,
    AgentExecutionResult,
    ExecutionContext,
    ExecutionState,
    InputEvent,
    LLMSettings,
)
from orchestrator_bridge.agent.settings import resolve_settings
from orchestrator_bridge.agent.store import ConfigStore, HttpConfigStore, MemoryConfigStore

__all__ = [
    "AgentConfig",
    "AgentExecutionRequest",
    "AgentExecutionResult",
    "AgentExecutor",
    "ConfigStore",
    "ExecutionContext",
    "ExecutionState",
    "HttpConfigStore",
    "InputCoordinator",
    "InputEvent",
    "LLMSettings",
    "MemoryConfigStore",
    "resolve_settings",
]

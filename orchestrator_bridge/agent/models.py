from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, ClassVar, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from orchestrator_bridge.constants import REASONING_CAPABILITY
from orchestrator_bridge.errors import (
    ErrorKind,
    ReasoningConfigMissing,
    ReasoningNotEnabled,
)


class _Record(BaseModel):
    """Stored records use camelCase keys; Python code uses snake_case."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


# ── LLM settings ────────────────────────────────────────────────


@dataclass(frozen=True)
class LLMSettings:
    provider: str
    model: str

    @classmethod
    def from_record(cls, data: Any) -> LLMSettings | None:
        """Build from ``{provider, model}``; None unless both are non-empty."""
        if not isinstance(data, dict):
            return None
        provider = data.get("provider")
        model = data.get("model")
        if isinstance(provider, str) and isinstance(model, str) and provider and model:
            return cls(provider=provider, model=model)
        return None


# ── Capability variants ─────────────────────────────────────────


class ReasoningCapability(_Record):
    kind: ClassVar[str] = REASONING_CAPABILITY

    role: str | None = ""
    goals: str | None = ""
    rules: str | None = ""
    llm_provider: str | None = None
    llm_model: str | None = None
    accept_from: list[str] = Field(default_factory=list)
    report_to: list[str] = Field(default_factory=list)

    @property
    def settings(self) -> LLMSettings | None:
        if self.llm_provider and self.llm_model:
            return LLMSettings(provider=self.llm_provider, model=self.llm_model)
        return None


class MemoryCapability(_Record):
    kind: ClassVar[str] = "memory"

    session_read: bool = False
    session_write: bool = False
    account_read: bool = False
    account_write: bool = False


class ListenerCapability(_Record):
    kind: ClassVar[str] = "listener"

    enabled: bool = False
    patterns: list[str] = Field(default_factory=list)
    input_sources: list[str] = Field(default_factory=list)
    input_types: list[str] = Field(default_factory=list)
    priority: int | None = None


class ExecutionCapability(_Record):
    kind: ClassVar[str] = "execution"

    target_output_agent_box_id: str | None = None
    display_mode: str | None = None  # chat, overlay, notification
    append_mode: str | None = None  # append, replace


Capability = Union[
    ReasoningCapability, MemoryCapability, ListenerCapability, ExecutionCapability
]


# ── Agent configuration ─────────────────────────────────────────


class AgentConfig(_Record):
    """A stored agent definition, read-only from the executor's side.

    ``capabilities`` holds the enabled capability names exactly as stored;
    the typed blocks live next to them. ``variants`` joins the two, so a
    capability counts only if it is both enabled and configured.
    """

    name: str = ""
    icon: str = ""
    capabilities: list[str] = Field(default_factory=list)
    reasoning: ReasoningCapability | None = None
    memory: MemoryCapability | None = None
    listener_section: ListenerCapability | None = None
    execution_section: ExecutionCapability | None = None
    is_system_agent: bool = False
    system_agent_type: str | None = None  # input_coordinator, output_coordinator

    @property
    def variants(self) -> list[Capability]:
        blocks: list[Capability | None] = [
            self.reasoning,
            self.memory,
            self.listener_section,
            self.execution_section,
        ]
        return [b for b in blocks if b is not None and b.kind in self.capabilities]

    def has_capability(self, kind: str) -> bool:
        return kind in self.capabilities

    def require_reasoning(self, agent_id: str | int) -> ReasoningCapability:
        """Return the reasoning block or raise; purely local, no I/O."""
        if not self.has_capability(REASONING_CAPABILITY):
            raise ReasoningNotEnabled(
                f"Agent {agent_id} does not have reasoning capability enabled"
            )
        for variant in self.variants:
            if isinstance(variant, ReasoningCapability):
                return variant
        raise ReasoningConfigMissing(f"Agent {agent_id} has no reasoning configuration")

    @property
    def listener_enabled(self) -> bool:
        return self.listener_section is not None and self.listener_section.enabled


# ── Inputs ──────────────────────────────────────────────────────


class InputEvent(_Record):
    """Normalized input from the command chat or a DOM event."""

    session_id: str = ""
    source: Literal["command", "dom"] = "command"
    text: str | None = None
    input_type: str | None = None
    metadata: Any = None


class ExecutionContext(_Record):
    """What a UI surface knows when it asks an agent to run."""

    user_input: str | None = None
    page_content: str | None = None
    selection: str | None = None
    trigger_data: Any = None


@dataclass
class AgentExecutionRequest:
    agent_id: str | int
    context: ExecutionContext
    agent_box_id: str | None = None
    settings_override: LLMSettings | None = None


# ── Execution state and result ──────────────────────────────────


class ExecutionState(str, enum.Enum):
    IDLE = "idle"
    CONFIG_LOADED = "config_loaded"
    CAPABILITY_CHECKED = "capability_checked"
    SETTINGS_RESOLVED = "settings_resolved"
    PROMPT_BUILT = "prompt_built"
    INVOKED = "invoked"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class AgentExecutionResult:
    success: bool
    content: str
    agent_id: str | int
    error: str | None = None
    error_kind: ErrorKind | None = None
    tokens_used: int | None = None
    state: ExecutionState = ExecutionState.IDLE
    failed_at: ExecutionState | None = None

    @classmethod
    def succeeded(
        cls, agent_id: str | int, content: str, tokens_used: int | None = None
    ) -> AgentExecutionResult:
        return cls(
            success=True,
            content=content,
            agent_id=agent_id,
            tokens_used=tokens_used,
            state=ExecutionState.SUCCEEDED,
        )

    @classmethod
    def failed(
        cls,
        agent_id: str | int,
        error: str,
        kind: ErrorKind | None,
        failed_at: ExecutionState,
    ) -> AgentExecutionResult:
        return cls(
            success=False,
            content="",
            agent_id=agent_id,
            error=error,
            error_kind=kind,
            state=ExecutionState.FAILED,
            failed_at=failed_at,
        )

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "success": self.success,
            "content": self.content,
            "agentId": self.agent_id,
        }
        if self.tokens_used is not None:
            data["tokensUsed"] = self.tokens_used
        if self.error is not None:
            data["error"] = self.error
            data["errorKind"] = self.error_kind.value if self.error_kind else None
        return data

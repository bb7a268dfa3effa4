from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from orchestrator_bridge.errors import ErrorKind

Role = Literal["system", "user", "assistant"]


@dataclass
class ChatMessage:
    role: Role
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


@dataclass
class ChatRequest:
    messages: list[ChatMessage] = field(default_factory=list)
    model_id: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    context: Any = None

    def to_payload(self) -> dict:
        """Wire shape: ``{modelId, messages, temperature?, maxTokens?, context?}``."""
        payload: dict[str, Any] = {
            "messages": [m.to_dict() for m in self.messages],
        }
        if self.model_id is not None:
            payload["modelId"] = self.model_id
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        if self.max_tokens is not None:
            payload["maxTokens"] = self.max_tokens
        if self.context is not None:
            payload["context"] = self.context
        return payload


@dataclass
class ChatResponse:
    """Discriminated result: ``content`` is meaningful only when ``success``."""

    success: bool
    content: str = ""
    tokens_used: int | None = None
    model: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None

    @classmethod
    def ok(
        cls, content: str, tokens_used: int | None = None, model: str | None = None
    ) -> ChatResponse:
        return cls(success=True, content=content, tokens_used=tokens_used, model=model)

    @classmethod
    def failed(cls, error: str, kind: ErrorKind) -> ChatResponse:
        return cls(success=False, content="", error=error, error_kind=kind)

"""Chat-completion round trips against the orchestrator's LLM endpoint."""

from orchestrator_bridge.llm.client import (
    check_backend_reachable,
    check_llm_availability,
    send_llm_request,
)
from orchestrator_bridge.llm.types import ChatMessage, ChatRequest, ChatResponse

__all__ = [
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "check_backend_reachable",
    "check_llm_availability",
    "send_llm_request",
]

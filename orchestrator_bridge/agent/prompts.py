"""Prompt construction from an agent's reasoning block.

The system message is built from, in order: role, goals, rules and an
optional context block; sections whose source is empty are left out and the
rest are joined with a newline. The layout is part of the contract: the
same agent and input always yield byte-identical prompts.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from orchestrator_bridge.agent.models import (
    ExecutionContext,
    InputEvent,
    ReasoningCapability,
)
from orchestrator_bridge.constants import DEFAULT_USER_INSTRUCTION


@dataclass(frozen=True)
class Prompt:
    system: str
    user: str

    def to_messages(self) -> list[dict]:
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.user},
        ]


def build_system_message(
    reasoning: ReasoningCapability, context_block: str | None = None
) -> str:
    parts: list[str] = []
    if reasoning.role:
        parts.append(f"Role: {reasoning.role}")
    if reasoning.goals:
        parts.append(f"\nGoals:\n{reasoning.goals}")
    if reasoning.rules:
        parts.append(f"\nRules and Constraints:\n{reasoning.rules}")
    if context_block:
        parts.append(context_block)
    return "\n".join(parts)


def _metadata_block(metadata: Any) -> str | None:
    if not metadata:
        return None
    return "\n\nContext:\n" + json.dumps(metadata, indent=2, ensure_ascii=False, default=str)


def _available_context_block(context: ExecutionContext) -> str | None:
    parts: list[str] = []
    if context.page_content:
        parts.append(f"Page Content:\n{context.page_content}")
    if context.selection:
        parts.append(f"User Selection:\n{context.selection}")
    if not parts:
        return None
    return "\n\nAvailable Context:\n" + "\n\n".join(parts)


def build_prompt_from_input(reasoning: ReasoningCapability, event: InputEvent) -> Prompt:
    """Prompt for an input event routed to the agent."""
    return Prompt(
        system=build_system_message(reasoning, _metadata_block(event.metadata)),
        user=event.text or DEFAULT_USER_INSTRUCTION,
    )


def build_prompt_from_context(
    reasoning: ReasoningCapability, context: ExecutionContext
) -> Prompt:
    """Prompt for a UI-triggered execution (page content, selection, trigger)."""
    user = context.user_input or context.trigger_data or DEFAULT_USER_INSTRUCTION
    if not isinstance(user, str):
        user = json.dumps(user, ensure_ascii=False, default=str)
    return Prompt(
        system=build_system_message(reasoning, _available_context_block(context)),
        user=user,
    )

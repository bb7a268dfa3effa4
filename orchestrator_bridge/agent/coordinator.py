"""InputCoordinator: routes input events to the agents that should handle them.

Agents with an enabled listener whose filters match the event run first. If
none match, agents without an enabled listener (always-on reasoning agents)
run instead. System agents never run here.

Every result is published on the bridge as ``AGENT_OUTPUT``. Successful
results carry an output route: the agent's configured target box, else the
session box bound to the agent, else the session's first box.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from orchestrator_bridge.agent.executor import AgentExecutor
from orchestrator_bridge.agent.models import AgentConfig, AgentExecutionResult, InputEvent
from orchestrator_bridge.agent.store import ConfigStore, agent_key, agent_name_from_storage_key
from orchestrator_bridge.bridge import ExtendedBridge
from orchestrator_bridge.constants import (
    DEFAULT_APPEND_MODE,
    EVENT_AGENT_OUTPUT,
    NO_RESPONSE_MESSAGE,
    REASONING_CAPABILITY,
    RESPONSE_SEPARATOR,
)
from orchestrator_bridge.errors import ConfigStoreError

logger = logging.getLogger(__name__)

_AGENT_NUMBER_RE = re.compile(r"agent\s*(\d+)", re.IGNORECASE)


def extract_agent_number(name: str) -> int | None:
    """``"agent01"`` -> 1, ``"Agent 02 - Summary"`` -> 2."""
    match = _AGENT_NUMBER_RE.search(name)
    return int(match.group(1)) if match else None


def matches_listener(agent: AgentConfig, event: InputEvent) -> bool:
    if agent.is_system_agent or not agent.listener_enabled:
        return False
    listener = agent.listener_section

    if listener.input_sources and event.source not in listener.input_sources:
        return False

    if listener.input_types and event.input_type:
        if event.input_type not in listener.input_types:
            return False

    if listener.patterns and event.text:
        text = event.text.lower()
        if not any(p.lower() in text for p in listener.patterns):
            return False

    return True


def is_always_on(agent: AgentConfig) -> bool:
    return (
        not agent.is_system_agent
        and agent.has_capability(REASONING_CAPABILITY)
        and not agent.listener_enabled
    )


@dataclass(frozen=True)
class OutputRoute:
    """Where a successful agent result should be shown."""

    target_box_id: str | None
    append_mode: str = DEFAULT_APPEND_MODE
    display_mode: str | None = None

    def to_dict(self) -> dict:
        return {
            "targetBoxId": self.target_box_id,
            "appendMode": self.append_mode,
            "displayMode": self.display_mode,
        }


def pick_agent_box(boxes: Any, number: int) -> str | None:
    """The box bound to this agent, else the first box of the session."""
    if not isinstance(boxes, list):
        return None
    boxes = [b for b in boxes if isinstance(b, dict) and isinstance(b.get("id"), str)]
    key = agent_key(number)
    for box in boxes:
        if box.get("agent") == key:
            return box["id"]
    return boxes[0]["id"] if boxes else None


class InputCoordinator:
    def __init__(
        self,
        executor: AgentExecutor,
        store: ConfigStore | None = None,
        bridge: ExtendedBridge | None = None,
    ) -> None:
        self.executor = executor
        self.store = store if store is not None else executor.store
        self.bridge = bridge

    async def load_agents(self) -> list[tuple[str, AgentConfig]]:
        """Every parseable agent record in the store, keyed by agent name."""
        agents: list[tuple[str, AgentConfig]] = []
        try:
            keys = await self.store.keys()
        except ConfigStoreError as e:
            logger.error("Failed to list agents: %s", e)
            return agents

        for key in sorted(keys):
            name = agent_name_from_storage_key(key)
            if name is None:
                continue
            try:
                record = await self.store.get(key)
                if not isinstance(record, dict):
                    continue
                agents.append((name, AgentConfig.model_validate(record)))
            except (ConfigStoreError, ValidationError) as e:
                logger.warning("Skipping agent %s: %s", name, e)
        return agents

    async def handle_input_event(self, event: InputEvent) -> str | None:
        """Run the agents this event selects; None if nothing was selected."""
        logger.info(
            "Handling input event: session=%s source=%s type=%s",
            event.session_id,
            event.source,
            event.input_type,
        )
        agents = await self.load_agents()

        selected = [(n, a) for n, a in agents if matches_listener(a, event)]
        if selected:
            logger.info("Matching listeners: %s", [n for n, _ in selected])
        else:
            selected = [(n, a) for n, a in agents if is_always_on(a)]
            if not selected:
                logger.info("No matching or always-on agents, input not forwarded")
                return None
            logger.info("Always-on agents: %s", [n for n, _ in selected])

        return await self._execute_agents(selected, event)

    async def _execute_agents(
        self, agents: list[tuple[str, AgentConfig]], event: InputEvent
    ) -> str:
        responses: list[str] = []
        for name, agent in agents:
            number = extract_agent_number(name) or extract_agent_number(agent.name)
            if number is None:
                logger.warning("Could not extract agent number from %s", name)
                continue

            result = await self.executor.run_agent_execution(number, event)
            if result.success and result.content:
                responses.append(result.content)
            await self._publish(agent, number, result, event)

        if responses:
            return RESPONSE_SEPARATOR.join(responses)
        return NO_RESPONSE_MESSAGE

    async def resolve_output_route(
        self, agent: AgentConfig, number: int, session_id: str
    ) -> OutputRoute:
        execution = agent.execution_section
        append_mode = (execution and execution.append_mode) or DEFAULT_APPEND_MODE
        display_mode = execution.display_mode if execution else None

        if execution and execution.target_output_agent_box_id:
            target = execution.target_output_agent_box_id
        else:
            target = await self._session_box(session_id, number)
        return OutputRoute(target, append_mode=append_mode, display_mode=display_mode)

    async def _session_box(self, session_id: str, number: int) -> str | None:
        if not session_id:
            return None
        try:
            session = await self.store.get(session_id)
        except ConfigStoreError as e:
            logger.warning("Failed to load session %s: %s", session_id, e)
            return None
        if not isinstance(session, dict):
            return None
        return pick_agent_box(session.get("agentBoxes"), number)

    async def _publish(
        self,
        agent: AgentConfig,
        number: int,
        result: AgentExecutionResult,
        event: InputEvent,
    ) -> None:
        if self.bridge is None:
            return
        payload = {"sessionId": event.session_id, **result.to_dict()}
        if result.success:
            route = await self.resolve_output_route(agent, number, event.session_id)
            if route.target_box_id is None:
                logger.info("No target box for agent %s output", number)
            payload.update(route.to_dict())
        else:
            logger.warning("Agent %s failed, output not routed: %s", number, result.error)
        self.bridge.emit(EVENT_AGENT_OUTPUT, payload)

"""InputCoordinator: listener matching, always-on fallback, aggregation."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from orchestrator_bridge.agent.coordinator import (
    InputCoordinator,
    extract_agent_number,
    is_always_on,
    matches_listener,
    pick_agent_box,
)
from orchestrator_bridge.agent.executor import AgentExecutor
from orchestrator_bridge.agent.models import AgentConfig, InputEvent
from orchestrator_bridge.agent.store import MemoryConfigStore
from orchestrator_bridge.bridge import ExtendedBridge
from orchestrator_bridge.constants import NO_RESPONSE_MESSAGE, RESPONSE_SEPARATOR
from orchestrator_bridge.transport.memory import InMemoryTransport
from tests.conftest import make_client, offline
from tests.test_executor import FakeOrchestrator


def agent(
    name: str,
    *,
    listener: dict[str, Any] | None = None,
    capabilities: list[str] | None = None,
    system: bool = False,
    provider: str = "mistral",
    execution: dict[str, Any] | None = None,
) -> str:
    caps = capabilities if capabilities is not None else ["reasoning"]
    record: dict[str, Any] = {
        "name": name,
        "capabilities": caps + (["listener"] if listener else []),
        "reasoning": {"role": name, "llmProvider": provider, "llmModel": "7b"},
        "isSystemAgent": system,
    }
    if listener is not None:
        record["listenerSection"] = listener
    if execution is not None:
        record["executionSection"] = execution
    return json.dumps(record)


class EchoOrchestrator(FakeOrchestrator):
    """Answers each chat with the agent's role so callers can tell them apart."""

    def __call__(self, request):
        response = super().__call__(request)
        if request.url.path == "/api/llm/chat":
            role = self.chat_requests[-1]["messages"][0]["content"]
            return httpx.Response(200, json={"ok": True, "data": {"content": f"from {role}"}})
        return response


def coordinator_for(data: dict[str, str], bridge: ExtendedBridge | None = None):
    store = MemoryConfigStore(data)
    orchestrator = EchoOrchestrator()
    executor = AgentExecutor(store, client=make_client(orchestrator), preflight=False)
    return InputCoordinator(executor, bridge=bridge), orchestrator


# ── 1. Helpers ──────────────────────────────────────────────────


@pytest.mark.parametrize(
    "name, expected",
    [("agent01", 1), ("Agent 02 - Summary", 2), ("AGENT12", 12), ("helper", None)],
)
def test_extract_agent_number(name, expected):
    assert extract_agent_number(name) == expected


def test_listener_filters():
    config = AgentConfig.model_validate(
        json.loads(
            agent(
                "Watcher",
                listener={
                    "enabled": True,
                    "patterns": ["Invoice"],
                    "inputSources": ["dom"],
                    "inputTypes": ["text"],
                },
            )
        )
    )

    assert matches_listener(
        config, InputEvent(source="dom", input_type="text", text="new INVOICE arrived")
    )
    assert not matches_listener(config, InputEvent(source="command", text="invoice"))
    assert not matches_listener(
        config, InputEvent(source="dom", input_type="image", text="invoice")
    )
    assert not matches_listener(config, InputEvent(source="dom", text="receipt"))
    assert not is_always_on(config)


def test_system_agents_never_match():
    config = AgentConfig.model_validate(
        json.loads(agent("Coordinator", listener={"enabled": True}, system=True))
    )
    assert not matches_listener(config, InputEvent(text="anything"))
    assert not is_always_on(config)


# ── 2. Routing ──────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_matching_listeners_run_and_always_on_agents_do_not():
    coordinator, orchestrator = coordinator_for(
        {
            "agent_agent01_instructions": agent(
                "Invoices", listener={"enabled": True, "patterns": ["invoice"]}
            ),
            "agent_agent02_instructions": agent("General"),
        }
    )

    answer = await coordinator.handle_input_event(InputEvent(text="Pay this invoice"))

    assert answer == "from Role: Invoices"
    assert len(orchestrator.chat_requests) == 1


@pytest.mark.asyncio
async def test_always_on_agents_run_when_no_listener_matches():
    coordinator, orchestrator = coordinator_for(
        {
            "agent_agent01_instructions": agent(
                "Invoices", listener={"enabled": True, "patterns": ["invoice"]}
            ),
            "agent_agent02_instructions": agent("General"),
            "agent_agent03_instructions": agent("Helper"),
            "agent_agent04_instructions": agent("NoReasoning", capabilities=["memory"]),
            "agent_agent05_instructions": agent("System", system=True),
        }
    )

    answer = await coordinator.handle_input_event(InputEvent(text="hello"))

    assert answer == RESPONSE_SEPARATOR.join(["from Role: General", "from Role: Helper"])
    assert len(orchestrator.chat_requests) == 2


@pytest.mark.asyncio
async def test_no_candidates_returns_none():
    coordinator, orchestrator = coordinator_for(
        {
            "agent_agent01_instructions": agent(
                "Invoices", listener={"enabled": True, "patterns": ["invoice"]}
            ),
            "globalLLMSettings": json.dumps({"provider": "mistral", "model": "7b"}),
        }
    )

    assert await coordinator.handle_input_event(InputEvent(text="hello")) is None
    assert orchestrator.chat_requests == []


@pytest.mark.asyncio
async def test_all_failures_yield_no_response_message():
    coordinator, _ = coordinator_for(
        {"agent_agent01_instructions": agent("Cloudy", provider="openai")}
    )

    assert await coordinator.handle_input_event(InputEvent(text="hi")) == NO_RESPONSE_MESSAGE


@pytest.mark.asyncio
async def test_malformed_agent_records_are_skipped():
    coordinator, orchestrator = coordinator_for(
        {
            "agent_agent01_instructions": "not json",
            "agent_agent02_instructions": json.dumps({"capabilities": "reasoning"}),
            "agent_agent03_instructions": agent("Fine"),
        }
    )

    assert await coordinator.handle_input_event(InputEvent(text="hi")) == "from Role: Fine"


@pytest.mark.asyncio
async def test_unreadable_store_returns_none():
    executor = AgentExecutor(client=make_client(offline), preflight=False)
    coordinator = InputCoordinator(executor)

    assert await coordinator.handle_input_event(InputEvent(text="hi")) is None


# ── 3. Output events ────────────────────────────────────────────


@pytest.mark.asyncio
async def test_results_are_published_on_the_bridge():
    bridge = ExtendedBridge(InMemoryTransport(), http=make_client(offline))
    outputs = []
    bridge.subscribe("AGENT_OUTPUT", outputs.append)
    coordinator, _ = coordinator_for(
        {
            "agent_agent01_instructions": agent("General"),
            "agent_agent02_instructions": agent("Cloudy", provider="openai"),
        },
        bridge=bridge,
    )

    await coordinator.handle_input_event(InputEvent(session_id="s-1", text="hi"))

    assert [o["agentId"] for o in outputs] == [1, 2]
    assert outputs[0]["sessionId"] == "s-1"
    assert outputs[0]["success"] is True
    assert outputs[1]["success"] is False
    assert outputs[1]["errorKind"] == "unsupported_provider"


def published_outputs(data: dict[str, str]):
    bridge = ExtendedBridge(InMemoryTransport(), http=make_client(offline))
    outputs: list[dict[str, Any]] = []
    bridge.subscribe("AGENT_OUTPUT", outputs.append)
    coordinator, _ = coordinator_for(data, bridge=bridge)
    return coordinator, outputs


@pytest.mark.asyncio
async def test_output_goes_to_the_configured_target_box():
    coordinator, outputs = published_outputs(
        {
            "agent_agent01_instructions": agent(
                "General",
                execution={"targetOutputAgentBoxId": "box-7", "displayMode": "overlay"},
            ),
        }
    )

    await coordinator.handle_input_event(InputEvent(session_id="s-1", text="hi"))

    assert outputs[0]["targetBoxId"] == "box-7"
    assert outputs[0]["appendMode"] == "append"
    assert outputs[0]["displayMode"] == "overlay"


@pytest.mark.asyncio
async def test_output_goes_to_the_session_box_bound_to_the_agent():
    boxes = [{"id": "b1", "agent": "agent09"}, {"id": "b2", "agent": "agent01"}]
    coordinator, outputs = published_outputs(
        {
            "agent_agent01_instructions": agent(
                "General", execution={"appendMode": "replace"}
            ),
            "s-1": json.dumps({"agentBoxes": boxes}),
        }
    )

    await coordinator.handle_input_event(InputEvent(session_id="s-1", text="hi"))

    assert outputs[0]["targetBoxId"] == "b2"
    assert outputs[0]["appendMode"] == "replace"
    assert outputs[0]["displayMode"] is None


@pytest.mark.asyncio
async def test_output_without_any_box_has_no_target():
    coordinator, outputs = published_outputs(
        {"agent_agent01_instructions": agent("General")}
    )

    await coordinator.handle_input_event(InputEvent(session_id="s-1", text="hi"))

    assert outputs[0]["targetBoxId"] is None
    assert outputs[0]["appendMode"] == "append"


@pytest.mark.asyncio
async def test_failed_results_are_not_routed():
    coordinator, outputs = published_outputs(
        {
            "agent_agent01_instructions": agent(
                "Cloudy", provider="openai", execution={"targetOutputAgentBoxId": "box-7"}
            ),
        }
    )

    await coordinator.handle_input_event(InputEvent(session_id="s-1", text="hi"))

    assert outputs[0]["success"] is False
    assert "targetBoxId" not in outputs[0]
    assert "appendMode" not in outputs[0]


def test_pick_agent_box():
    boxes = [{"id": "b1", "agent": "agent09"}, {"agent": "agent01"}, {"id": "b3"}]

    assert pick_agent_box(boxes, 9) == "b1"
    # No box is bound to agent01 with a usable id, so the first box wins
    assert pick_agent_box(boxes, 1) == "b1"
    assert pick_agent_box([], 1) is None
    assert pick_agent_box("not a list", 1) is None

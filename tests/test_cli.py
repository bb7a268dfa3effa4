"""Command line: argument parsing and exit codes."""

from __future__ import annotations

import json

import pytest

from orchestrator_bridge import __main__ as cli
from orchestrator_bridge.agent.models import AgentExecutionResult, ExecutionState
from orchestrator_bridge.errors import ErrorKind


class StubExecutor:
    calls: list = []

    def __init__(self, *args, **kwargs):
        self.kwargs = kwargs

    async def run_agent_execution(self, agent_id, event):
        StubExecutor.calls.append((agent_id, event.text, self.kwargs))
        if agent_id == "9":
            return AgentExecutionResult.failed(
                agent_id, "Agent 9 not found", ErrorKind.AGENT_NOT_FOUND, ExecutionState.IDLE
            )
        return AgentExecutionResult.succeeded(agent_id, "done")


@pytest.fixture
def stub_executor(monkeypatch):
    StubExecutor.calls = []
    monkeypatch.setattr(cli, "AgentExecutor", StubExecutor)
    return StubExecutor


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


def test_run_agent_success(stub_executor, capsys):
    code = cli.main(["run-agent", "1", "--text", "Summarize", "--skip-preflight"])

    assert code == 0
    assert stub_executor.calls == [("1", "Summarize", {"preflight": False})]
    assert json.loads(capsys.readouterr().out) == {
        "success": True,
        "content": "done",
        "agentId": "1",
    }


def test_run_agent_failure_exit_code(stub_executor, capsys):
    code = cli.main(["run-agent", "9"])

    assert code == 1
    output = json.loads(capsys.readouterr().out)
    assert output["errorKind"] == "agent_not_found"

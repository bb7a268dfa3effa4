"""Command line entry point.

Usage:
  python -m orchestrator_bridge status
  python -m orchestrator_bridge run-agent 1 --text "Summarize this page"
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from orchestrator_bridge.agent.executor import AgentExecutor
from orchestrator_bridge.agent.models import InputEvent
from orchestrator_bridge.bridge import create_default_bridge
from orchestrator_bridge.config import settings
from orchestrator_bridge.constants import WS_CONNECT_WAIT_SECONDS
from orchestrator_bridge.http import close_client
from orchestrator_bridge.llm.client import check_backend_reachable, check_llm_availability


async def show_status(args: argparse.Namespace) -> int:
    bridge = create_default_bridge()
    try:
        await bridge.connect()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + args.wait
        status = await bridge.get_connection_status()
        while not status.is_connected and loop.time() < deadline:
            await asyncio.sleep(0.1)
            status = await bridge.get_connection_status()
        report = {
            "realtime": status.to_dict(),
            "backendReachable": await check_backend_reachable(),
            "runtimeReady": await check_llm_availability(),
        }
    finally:
        await bridge.aclose()
        await close_client()
    print(json.dumps(report, indent=2))
    return 0 if report["backendReachable"] else 1


async def run_agent(args: argparse.Namespace) -> int:
    executor = AgentExecutor(preflight=not args.skip_preflight)
    event = InputEvent(session_id=args.session, source="command", text=args.text)
    try:
        result = await executor.run_agent_execution(args.agent_id, event)
    finally:
        await close_client()
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    return 0 if result.success else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="orchestrator_bridge",
        description="Talk to the desktop orchestrator from the command line.",
    )
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        help=f"Logging level (default: {settings.LOG_LEVEL})",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    status = sub.add_parser("status", help="Show realtime and backend status")
    status.add_argument(
        "--wait",
        type=float,
        default=WS_CONNECT_WAIT_SECONDS,
        help="Seconds to wait for the realtime channel to connect",
    )
    status.set_defaults(handler=show_status)

    agent = sub.add_parser("run-agent", help="Run one agent on a text input")
    agent.add_argument("agent_id", help="Agent number or key, e.g. 1 or agent01")
    agent.add_argument("--text", default=None, help="Input text for the agent")
    agent.add_argument("--session", default="cli", help="Session id to report")
    agent.add_argument(
        "--skip-preflight",
        action="store_true",
        help="Do not probe the backend and model runtime before invoking",
    )
    agent.set_defaults(handler=run_agent)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(args.handler(args))


if __name__ == "__main__":
    sys.exit(main())

"""In-process transport used by tests and demo surfaces."""

from __future__ import annotations

from typing import Any, Callable

from orchestrator_bridge.constants import READY_STATE_CLOSED, READY_STATE_OPEN
from orchestrator_bridge.errors import TransportUnreachableError
from orchestrator_bridge.transport.base import Transport


class InMemoryTransport(Transport):
    """Records outbound messages and lets the caller push inbound ones.

    ``responder`` is invoked with every sent message and the transport
    itself, so a fake orchestrator can answer through ``deliver``.
    """

    def __init__(
        self,
        responder: Callable[[dict[str, Any], InMemoryTransport], None] | None = None,
        connected: bool = True,
    ) -> None:
        super().__init__()
        self.sent: list[dict[str, Any]] = []
        self.responder = responder
        self.connected = connected
        self.fail_sends = False
        self.fail_status = False
        self.closed = False

    async def send(self, message: dict[str, Any]) -> None:
        if self.fail_sends or not self.connected:
            raise TransportUnreachableError("In-memory transport is disconnected")
        self.sent.append(message)
        if self.responder is not None:
            self.responder(message, self)

    def deliver(self, message: dict[str, Any]) -> None:
        self._dispatch(message)

    async def query_status(self) -> dict[str, Any]:
        if self.fail_status:
            raise TransportUnreachableError("Status query failed")
        return {
            "isConnected": self.connected,
            "readyState": READY_STATE_OPEN if self.connected else READY_STATE_CLOSED,
        }

    async def close(self) -> None:
        self.closed = True
        self.connected = False

    def sent_types(self) -> list[str]:
        return [m.get("type", "") for m in self.sent]

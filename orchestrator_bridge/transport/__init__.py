"""Platform transports the bridge can run over."""

from orchestrator_bridge.transport.base import MessageListener, Transport
from orchestrator_bridge.transport.memory import InMemoryTransport
from orchestrator_bridge.transport.websocket import WebSocketTransport

__all__ = [
    "MessageListener",
    "Transport",
    "InMemoryTransport",
    "WebSocketTransport",
]

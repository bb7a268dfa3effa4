"""Communication and execution core between UI surfaces and the desktop
orchestrator."""

from orchestrator_bridge.bridge import (
    Bridge,
    BridgeProvider,
    ConnectionStatus,
    ExtendedBridge,
    PanelPlacement,
    RaceOutcome,
    get_shared_bridge,
    reset_shared_bridge,
)
from orchestrator_bridge.events import EventManager

__version__ = "0.1.0"

__all__ = [
    "Bridge",
    "BridgeProvider",
    "ConnectionStatus",
    "EventManager",
    "ExtendedBridge",
    "PanelPlacement",
    "RaceOutcome",
    "get_shared_bridge",
    "reset_shared_bridge",
]

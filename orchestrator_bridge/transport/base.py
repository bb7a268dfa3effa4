from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable

logger = logging.getLogger(__name__)

MessageListener = Callable[[dict[str, Any]], None]


class Transport(ABC):
    """Carries already-deserialized ``{type, ...}`` messages to and from the
    orchestrator.

    Listeners are called synchronously for every inbound message. ``send``
    raises on failure; callers with a fire-and-forget contract log instead
    of propagating.
    """

    def __init__(self) -> None:
        self._listeners: list[MessageListener] = []

    @abstractmethod
    async def send(self, message: dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def query_status(self) -> dict[str, Any]:
        """Return ``{"isConnected": bool, "readyState": int | None}``."""
        ...

    async def start(self) -> None:
        return None

    async def close(self) -> None:
        return None

    def add_listener(self, listener: MessageListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: MessageListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _dispatch(self, message: dict[str, Any]) -> None:
        """Hand a message to every listener; a failing listener is logged
        and never stops the receive loop."""
        for listener in list(self._listeners):
            try:
                listener(message)
            except Exception:
                logger.exception("Listener failed on %r message", message.get("type"))

"""EventManager: in-process publish/subscribe for orchestrator events.

Inbound transport messages of the form ``{type, data?, ...}`` are re-emitted
under their ``type`` so UI surfaces subscribe by event name instead of
parsing platform messages themselves.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from orchestrator_bridge.transport.base import Transport

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], None]
Unsubscribe = Callable[[], None]


def _noop() -> None:
    return None


class EventManager:
    def __init__(self, transport: Transport | None = None) -> None:
        # dict preserves registration order, doubling as an ordered set
        self._listeners: dict[str, dict[EventHandler, None]] = {}
        self._transport = transport
        self._destroyed = False
        if transport is not None:
            transport.add_listener(self.handle_message)

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def subscribe(self, event: str, handler: EventHandler) -> Unsubscribe:
        if self._destroyed:
            logger.warning("subscribe(%s) on a destroyed EventManager", event)
            return _noop

        self._listeners.setdefault(event, {})[handler] = None

        def unsubscribe() -> None:
            handlers = self._listeners.get(event)
            if handlers is None or handler not in handlers:
                return
            del handlers[handler]
            if not handlers:
                del self._listeners[event]

        return unsubscribe

    def emit(self, event: str, data: Any = None) -> None:
        if self._destroyed:
            return
        handlers = self._listeners.get(event)
        if not handlers:
            return
        for handler in list(handlers):
            try:
                handler(data)
            except Exception:
                logger.exception("Error in handler for %s", event)

    def handle_message(self, message: dict[str, Any]) -> None:
        """Transport listener: emit the message under its type."""
        if not isinstance(message, dict):
            return
        event = message.get("type")
        if not isinstance(event, str) or not event:
            logger.debug("Ignoring message without a string type: %r", event)
            return
        self.emit(event, message["data"] if "data" in message else message)

    def subscriber_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def event_names(self) -> list[str]:
        return list(self._listeners)

    def destroy(self) -> None:
        if self._destroyed:
            return
        if self._transport is not None:
            self._transport.remove_listener(self.handle_message)
            self._transport = None
        self._listeners.clear()
        self._destroyed = True

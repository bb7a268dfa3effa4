"""Bridge: the capability surface UI components use to talk to the orchestrator.

``Bridge`` is the minimal contract (send, subscribe, one-shot AI request, open
file, panel placement). ``ExtendedBridge`` adds asset loading with an
HTTP-then-realtime fallback, connection status, trigger fan-out and an
explicit destroy lifecycle.

Both phases of a fallback never overlap: the HTTP attempt runs to completion
first, and only if it does not produce a usable answer does the realtime
race start. The race resolves exactly once; whichever of {matching result,
matching error, timeout} comes first releases both subscriptions before the
caller resumes.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Coroutine
from urllib.parse import quote

import httpx

from orchestrator_bridge.constants import (
    ASSET_LOAD_TIMEOUT_SECONDS,
    CURSOR_FILES_TIMEOUT_SECONDS,
    EVENT_ASSET_ERROR,
    EVENT_ASSET_RESULT,
    EVENT_CURSOR_FILES_CHANGED,
    MSG_EXECUTE_TRIGGER,
    MSG_GET_ASSET,
    MSG_GET_CURSOR_FILES,
    MSG_OPEN_FILE,
    PATH_CURSOR_FILES,
    PATH_TEMPLATE,
    STATUS_PROBE_TIMEOUT_SECONDS,
)
from orchestrator_bridge.errors import (
    AssetLoadError,
    AssetLoadTimeout,
    ChatCompletionError,
    ErrorKind,
    TransportUnreachableError,
)
from orchestrator_bridge.events import EventHandler, EventManager, Unsubscribe
from orchestrator_bridge.http import get_client
from orchestrator_bridge.llm.client import send_llm_request
from orchestrator_bridge.llm.types import ChatMessage, ChatRequest
from orchestrator_bridge.transport.base import Transport

logger = logging.getLogger(__name__)


class PanelPlacement(str, enum.Enum):
    SIDEBAR = "sidebar"
    OVERLAY = "overlay"
    FLOATING = "floating"


class RaceOutcome(str, enum.Enum):
    PENDING = "pending"
    WON_BY_HTTP = "won_by_http"
    WON_BY_CHANNEL_SUCCESS = "won_by_channel_success"
    WON_BY_CHANNEL_ERROR = "won_by_channel_error"
    WON_BY_TIMEOUT = "won_by_timeout"


@dataclass
class ConnectionStatus:
    is_connected: bool
    ready_state: int | None = None

    def to_dict(self) -> dict:
        return {"isConnected": self.is_connected, "readyState": self.ready_state}


class ChannelRace:
    """One realtime request racing a success event, an error event and a timeout.

    Handlers filter events with ``matches``; the first matching event (or the
    timeout) settles ``outcome`` and releases every subscription immediately,
    so late events can neither resolve twice nor leak a handler.
    """

    def __init__(
        self,
        events: EventManager,
        result_event: str,
        error_event: str | None,
        matches: Callable[[Any], bool],
    ) -> None:
        self.outcome = RaceOutcome.PENDING
        self.data: Any = None
        self._future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._matches = matches
        self._unsubscribers: list[Unsubscribe] = [
            events.subscribe(result_event, self._on_result)
        ]
        if error_event is not None:
            self._unsubscribers.append(events.subscribe(error_event, self._on_error))

    def _settle(self, outcome: RaceOutcome, data: Any) -> None:
        if self.outcome is not RaceOutcome.PENDING:
            return
        self.outcome = outcome
        self.data = data
        self.release()
        if not self._future.done():
            self._future.set_result(data)

    def _on_result(self, data: Any) -> None:
        if self._matches(data):
            self._settle(RaceOutcome.WON_BY_CHANNEL_SUCCESS, data)

    def _on_error(self, data: Any) -> None:
        if self._matches(data):
            self._settle(RaceOutcome.WON_BY_CHANNEL_ERROR, data)

    def release(self) -> None:
        unsubscribers, self._unsubscribers = self._unsubscribers, []
        for unsubscribe in unsubscribers:
            unsubscribe()

    async def wait(self, timeout: float) -> Any:
        """Return the winning payload (None on timeout); see ``outcome``."""
        try:
            await asyncio.wait_for(self._future, timeout=timeout)
        except asyncio.TimeoutError:
            # An event may still have won while the timeout was unwinding
            self._settle(RaceOutcome.WON_BY_TIMEOUT, None)
        finally:
            # Cancellation of the awaiting caller releases too
            self.release()
        return self.data


def _field(data: Any, name: str) -> Any:
    return data.get(name) if isinstance(data, dict) else None


def _file_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [f for f in value if isinstance(f, str)]


def _build_message(msg_type: str, data: Any) -> dict[str, Any]:
    if isinstance(data, dict):
        return {"type": msg_type, **data}
    if data is None:
        return {"type": msg_type}
    return {"type": msg_type, "data": data}


class Bridge:
    def __init__(
        self,
        transport: Transport,
        *,
        http: httpx.AsyncClient | None = None,
        events: EventManager | None = None,
    ) -> None:
        self._transport = transport
        self._http = http
        self._events = events or EventManager(transport)
        self._pending_sends: set[asyncio.Task[None]] = set()
        self._destroyed = False

    @property
    def events(self) -> EventManager:
        return self._events

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def http(self) -> httpx.AsyncClient:
        return self._http if self._http is not None else get_client()

    # ------------------------------------------------------------------
    # Fire-and-forget sends
    # ------------------------------------------------------------------

    def send_message(self, msg_type: str, data: Any = None) -> None:
        """Forward a message to the orchestrator; failures are only logged."""
        if self._destroyed:
            logger.warning("Dropping %s: bridge is destroyed", msg_type)
            return
        logger.debug("Sending message: %s", msg_type)
        self._spawn(self._deliver(_build_message(msg_type, data)))

    async def _deliver(self, message: dict[str, Any]) -> None:
        try:
            await self._transport.send(message)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Failed to send %s: %s", message.get("type"), e)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        try:
            task = asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            coro.close()
            logger.warning("No running event loop, message dropped")
            return
        self._pending_sends.add(task)
        task.add_done_callback(self._pending_sends.discard)

    async def _send_request(self, msg_type: str, data: Any = None) -> None:
        """Awaited send for request/response exchanges; raises on failure."""
        if self._destroyed:
            raise TransportUnreachableError(f"Cannot send {msg_type}: bridge is destroyed")
        logger.debug("Sending request: %s", msg_type)
        await self._transport.send(_build_message(msg_type, data))

    async def flush(self) -> None:
        """Wait until every queued fire-and-forget send has finished."""
        while self._pending_sends:
            await asyncio.gather(*list(self._pending_sends), return_exceptions=True)

    # ------------------------------------------------------------------
    # Minimal capability set
    # ------------------------------------------------------------------

    def subscribe(self, event: str, handler: EventHandler) -> Unsubscribe:
        logger.debug("Subscribing to: %s", event)
        return self._events.subscribe(event, handler)

    async def request_ai(self, prompt: str, context: Any = None) -> str:
        """One chat round trip; raises ChatCompletionError on any failure."""
        request = ChatRequest(
            messages=[ChatMessage(role="user", content=prompt)],
            context=context,
        )
        response = await send_llm_request(request, client=self.http)
        if not response.success:
            raise ChatCompletionError(
                response.error or "LLM request failed", kind=response.error_kind
            )
        return response.content

    def open_file(self, path: str, line: int | None = None) -> None:
        self.send_message(MSG_OPEN_FILE, {"filePath": path, "lineNumber": line})

    def get_panel(self) -> PanelPlacement:
        return PanelPlacement.SIDEBAR


class ExtendedBridge(Bridge):
    def __init__(
        self,
        transport: Transport,
        *,
        http: httpx.AsyncClient | None = None,
        owns_transport: bool = False,
        asset_timeout: float = ASSET_LOAD_TIMEOUT_SECONDS,
        cursor_files_timeout: float = CURSOR_FILES_TIMEOUT_SECONDS,
        status_timeout: float = STATUS_PROBE_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(transport, http=http)
        self._owns_transport = owns_transport
        self.asset_timeout = asset_timeout
        self.cursor_files_timeout = cursor_files_timeout
        self.status_timeout = status_timeout
        self._close_task: asyncio.Task[None] | None = None
        self._transport_closed = False

    async def connect(self) -> None:
        await self._transport.start()

    # ------------------------------------------------------------------
    # Asset loading
    # ------------------------------------------------------------------

    async def load_template(self, name: str) -> str:
        """Load a named template, HTTP first, realtime channel as fallback.

        Raises AssetLoadError with the orchestrator's message, AssetLoadError
        of kind TRANSPORT_UNREACHABLE if the request cannot be sent, or
        AssetLoadTimeout if the channel stays silent for ``asset_timeout``.
        """
        logger.info("Loading template: %s", name)

        content = await self._fetch_template_http(name)
        if content is not None:
            logger.debug("Template %s: %s", name, RaceOutcome.WON_BY_HTTP.value)
            return content

        race = ChannelRace(
            self._events,
            EVENT_ASSET_RESULT,
            EVENT_ASSET_ERROR,
            matches=lambda data: _field(data, "name") == name,
        )
        try:
            try:
                await self._send_request(MSG_GET_ASSET, {"name": name})
            except TransportUnreachableError as e:
                logger.warning("Template %s: realtime request failed: %s", name, e)
                raise AssetLoadError(
                    name,
                    f"Cannot reach the orchestrator: {e}",
                    kind=ErrorKind.TRANSPORT_UNREACHABLE,
                ) from e
            data = await race.wait(self.asset_timeout)
        finally:
            race.release()
        logger.debug("Template %s: %s", name, race.outcome.value)

        if race.outcome is RaceOutcome.WON_BY_CHANNEL_SUCCESS:
            return _field(data, "content") or ""
        if race.outcome is RaceOutcome.WON_BY_CHANNEL_ERROR:
            raise AssetLoadError(name, _field(data, "error") or "Template load failed")
        raise AssetLoadTimeout(name, self.asset_timeout)

    async def _fetch_template_http(self, name: str) -> str | None:
        try:
            response = await self.http.get(PATH_TEMPLATE.format(name=quote(name, safe="")))
        except httpx.HTTPError as e:
            logger.debug("HTTP template fetch failed for %s: %s", name, e)
            return None
        if not response.is_success:
            return None
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict) and body.get("ok") and body.get("content"):
            return body["content"]
        return None

    async def get_cursor_changed_files(self) -> list[str]:
        """Best-effort list of files changed in the editor session."""
        files = await self._fetch_cursor_files_http()
        if files is not None:
            return files

        race = ChannelRace(
            self._events,
            EVENT_CURSOR_FILES_CHANGED,
            None,
            matches=lambda data: True,
        )
        try:
            try:
                await self._send_request(MSG_GET_CURSOR_FILES)
            except TransportUnreachableError as e:
                logger.debug("Cursor files request failed: %s", e)
                return []
            data = await race.wait(self.cursor_files_timeout)
        finally:
            race.release()
        if race.outcome is RaceOutcome.WON_BY_CHANNEL_SUCCESS:
            return _file_list(_field(data, "files"))
        return []

    async def _fetch_cursor_files_http(self) -> list[str] | None:
        try:
            response = await self.http.get(PATH_CURSOR_FILES)
        except httpx.HTTPError as e:
            logger.debug("HTTP cursor files fetch failed: %s", e)
            return None
        if not response.is_success:
            return None
        try:
            body = response.json()
        except ValueError:
            return None
        files = body.get("files") if isinstance(body, dict) else None
        if not isinstance(files, list):
            return None
        return _file_list(files)

    # ------------------------------------------------------------------
    # Status and triggers
    # ------------------------------------------------------------------

    async def get_connection_status(self) -> ConnectionStatus:
        """Unknown counts as down: any failure yields ``is_connected=False``."""
        try:
            status = await asyncio.wait_for(
                self._transport.query_status(), timeout=self.status_timeout
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.debug("Connection status query failed: %s", e)
            return ConnectionStatus(is_connected=False)
        if not isinstance(status, dict):
            return ConnectionStatus(is_connected=False)
        return ConnectionStatus(
            is_connected=bool(status.get("isConnected")),
            ready_state=status.get("readyState"),
        )

    def send_trigger(self, trigger_id: str, context: Any = None) -> None:
        logger.info("Sending trigger: %s", trigger_id)
        self.send_message(
            MSG_EXECUTE_TRIGGER, {"triggerId": trigger_id, "context": context}
        )

    def emit(self, event: str, data: Any = None) -> None:
        """Inject an event as if it had arrived from the transport."""
        self._events.emit(event, data)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        self._events.destroy()
        for task in list(self._pending_sends):
            task.cancel()
        if self._owns_transport:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.warning(
                    "No running event loop, owned transport left open; use aclose()"
                )
                return
            self._close_task = loop.create_task(self._transport.close())
            self._transport_closed = True

    async def aclose(self) -> None:
        """Destroy the bridge and wait for an owned transport to close."""
        self.destroy()
        if self._close_task is not None:
            await self._close_task
            self._close_task = None
        elif self._owns_transport and not self._transport_closed:
            # destroy() ran without a loop earlier
            await self._transport.close()
            self._transport_closed = True


def create_default_bridge() -> ExtendedBridge:
    from orchestrator_bridge.transport.websocket import WebSocketTransport

    return ExtendedBridge(WebSocketTransport(), owns_transport=True)


class BridgeProvider:
    """Holds the one bridge a composition root hands to its UI surfaces.

    Construction is synchronous, so the first ``get()`` wins and every later
    call receives the same instance until ``reset()``.
    """

    def __init__(self, factory: Callable[[], ExtendedBridge] = create_default_bridge) -> None:
        self._factory = factory
        self._bridge: ExtendedBridge | None = None

    def get(self) -> ExtendedBridge:
        if self._bridge is None:
            self._bridge = self._factory()
        return self._bridge

    def reset(self) -> None:
        bridge, self._bridge = self._bridge, None
        if bridge is not None:
            bridge.destroy()


_default_provider = BridgeProvider()


def get_shared_bridge() -> ExtendedBridge:
    return _default_provider.get()


def reset_shared_bridge() -> None:
    _default_provider.reset()

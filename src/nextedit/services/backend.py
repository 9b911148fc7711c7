"""Backend connection protocol, connection registry, and an asyncio adapter."""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Protocol, Set, Tuple

from ..core.ranges import PositionEncoding, normalize_encoding

LOGGER = logging.getLogger(__name__)

INLINE_EDIT_METHOD = "textDocument/copilotInlineEdit"
DID_FOCUS_METHOD = "textDocument/didFocus"
EXECUTE_COMMAND_METHOD = "workspace/executeCommand"


class BackendRequestError(RuntimeError):
    """Transport-level failure reported to a response handler."""

    def __init__(self, message: str, *, code: int | None = None, method: str | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.method = method


@dataclass(slots=True, frozen=True)
class ResponseContext:
    """Identifies which request a response belongs to."""

    connection_id: int
    request_id: int
    method: str


ResponseHandler = Callable[[Optional[BaseException], Any, ResponseContext], None]


class BackendConnection(Protocol):
    """Minimal surface the suggestion lifecycle needs from a language backend."""

    id: int
    name: str
    offset_encoding: PositionEncoding

    def request(
        self, method: str, params: Mapping[str, Any], handler: ResponseHandler
    ) -> Tuple[bool, int | None]:
        """Issue ``method`` asynchronously; ``handler`` runs at most once."""
        ...

    def cancel_request(self, request_id: int) -> None:
        ...

    def notify(self, method: str, params: Mapping[str, Any]) -> bool:
        ...

    def exec_command(self, command: Mapping[str, Any], *, document_id: str) -> None:
        ...


@dataclass(slots=True)
class _Registration:
    connection: BackendConnection
    nes_capable: bool
    documents: set[str] = field(default_factory=set)


class ConnectionRegistry:
    """Tracks live backend connections and the documents they serve."""

    def __init__(self) -> None:
        self._registrations: Dict[int, _Registration] = {}

    def register(self, connection: BackendConnection, *, nes_capable: bool = True) -> None:
        existing = self._registrations.get(connection.id)
        if existing is not None:
            existing.connection = connection
            existing.nes_capable = nes_capable
            return
        self._registrations[connection.id] = _Registration(connection=connection, nes_capable=nes_capable)
        LOGGER.debug("Registered connection %s (%s)", connection.id, connection.name)

    def unregister(self, connection_id: int) -> BackendConnection | None:
        registration = self._registrations.pop(connection_id, None)
        if registration is None:
            return None
        LOGGER.debug("Unregistered connection %s", connection_id)
        return registration.connection

    def attach(self, connection_id: int, document_id: str) -> None:
        registration = self._registrations.get(connection_id)
        if registration is None:
            raise KeyError(f"Unknown connection: {connection_id}")
        registration.documents.add(document_id)

    def detach_document(self, document_id: str) -> None:
        for registration in self._registrations.values():
            registration.documents.discard(document_id)

    def get(self, connection_id: int) -> BackendConnection | None:
        registration = self._registrations.get(connection_id)
        return registration.connection if registration is not None else None

    def is_nes_capable(self, connection_id: int) -> bool:
        registration = self._registrations.get(connection_id)
        return registration is not None and registration.nes_capable

    def connections_for(self, document_id: str, *, nes_only: bool = True) -> List[BackendConnection]:
        """Return connections attached to ``document_id`` in registration order."""

        return [
            registration.connection
            for registration in self._registrations.values()
            if document_id in registration.documents and (registration.nes_capable or not nes_only)
        ]

    def connection_for(self, document_id: str) -> BackendConnection | None:
        connections = self.connections_for(document_id)
        return connections[0] if connections else None

    def __len__(self) -> int:
        return len(self._registrations)


_CONNECTION_IDS = itertools.count(1)

Sender = Callable[[str, Mapping[str, Any]], Awaitable[Any]]


class AsyncioConnection:
    """Adapts an async ``send(method, params)`` coroutine to :class:`BackendConnection`.

    Each request runs as its own task. Cancelling a request cancels the task,
    and a cancelled task never invokes its handler.
    """

    def __init__(
        self,
        send: Sender,
        *,
        name: str = "backend",
        offset_encoding: str | None = None,
        notifier: Callable[[str, Mapping[str, Any]], None] | None = None,
        connection_id: int | None = None,
    ) -> None:
        self.id = connection_id if connection_id is not None else next(_CONNECTION_IDS)
        self.name = name
        self.offset_encoding: PositionEncoding = normalize_encoding(offset_encoding)
        self._send = send
        self._notifier = notifier
        self._request_ids = itertools.count(1)
        self._tasks: Dict[int, asyncio.Task[None]] = {}
        self._notifications: Set[asyncio.Task[None]] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_requests(self) -> Tuple[int, ...]:
        return tuple(self._tasks)

    @property
    def pending_notifications(self) -> int:
        return len(self._notifications)

    def request(
        self, method: str, params: Mapping[str, Any], handler: ResponseHandler
    ) -> Tuple[bool, int | None]:
        if self._closed:
            return False, None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.debug("Connection %s cannot issue %s without a running loop", self.id, method)
            return False, None
        request_id = next(self._request_ids)
        context = ResponseContext(connection_id=self.id, request_id=request_id, method=method)
        self._tasks[request_id] = loop.create_task(self._run(method, dict(params), handler, context))
        return True, request_id

    def cancel_request(self, request_id: int) -> None:
        task = self._tasks.pop(request_id, None)
        if task is not None and not task.done():
            task.cancel()

    def notify(self, method: str, params: Mapping[str, Any]) -> bool:
        if self._closed:
            return False
        if self._notifier is not None:
            self._notifier(method, dict(params))
            return True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return False
        task = loop.create_task(self._fire_and_forget(method, dict(params)))
        self._notifications.add(task)
        task.add_done_callback(self._notifications.discard)
        return True

    def exec_command(self, command: Mapping[str, Any], *, document_id: str) -> None:
        params = {
            "command": command.get("command"),
            "arguments": list(command.get("arguments") or []),
        }
        LOGGER.debug("Executing command %s for %s", params["command"], document_id)
        self.notify(EXECUTE_COMMAND_METHOD, params)

    def close(self) -> None:
        self._closed = True
        for request_id in list(self._tasks):
            self.cancel_request(request_id)

    async def _run(
        self,
        method: str,
        params: Dict[str, Any],
        handler: ResponseHandler,
        context: ResponseContext,
    ) -> None:
        try:
            result = await self._send(method, params)
        except asyncio.CancelledError:
            return
        except Exception as exc:
            self._tasks.pop(context.request_id, None)
            error = exc if isinstance(exc, BackendRequestError) else BackendRequestError(str(exc), method=method)
            self._deliver(handler, error, None, context)
            return
        self._tasks.pop(context.request_id, None)
        self._deliver(handler, None, result, context)

    def _deliver(
        self,
        handler: ResponseHandler,
        error: Optional[BaseException],
        result: Any,
        context: ResponseContext,
    ) -> None:
        try:
            handler(error, result, context)
        except Exception:
            LOGGER.exception("Response handler for %s on connection %s failed", context.method, self.id)

    async def _fire_and_forget(self, method: str, params: Dict[str, Any]) -> None:
        try:
            await self._send(method, params)
        except Exception:
            LOGGER.debug("Notification %s on connection %s failed", method, self.id, exc_info=True)


__all__ = [
    "AsyncioConnection",
    "BackendConnection",
    "BackendRequestError",
    "ConnectionRegistry",
    "DID_FOCUS_METHOD",
    "EXECUTE_COMMAND_METHOD",
    "INLINE_EDIT_METHOD",
    "ResponseContext",
    "ResponseHandler",
]

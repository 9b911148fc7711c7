"""Request coordination: issuing, cancelling, and demultiplexing suggestions."""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Any, Callable, Dict, Optional

from ..core.ranges import from_column
from ..events import NesEditsChanged, NesRequestIssued
from ..services.backend import BackendConnection, ResponseContext
from .context import InFlightRequest, NesContext
from .edit import EditRecord

LOGGER = logging.getLogger(__name__)


class TriggerKind(IntEnum):
    """What caused a suggestion request."""

    INVOKED = 1
    AUTOMATIC = 2


def cancel(ctx: NesContext) -> int:
    """Cancel every in-flight request. Returns how many were outstanding."""

    count = 0
    for connection_id, handle in list(ctx.requests.items()):
        ctx.requests.pop(connection_id, None)
        count += 1
        if handle.request_id is None:
            continue
        connection = ctx.connections.get(connection_id)
        if connection is not None:
            connection.cancel_request(handle.request_id)
            LOGGER.debug("Cancelled request %s on connection %s", handle.request_id, connection_id)
    return count


def clear(ctx: NesContext) -> None:
    """Cancel in-flight requests, drop all edits, and tell renderers."""

    cancel(ctx)
    ctx.store.reset()
    ctx.bus.publish(NesEditsChanged(document_id=None))


class RequestCoordinator:
    """Owns at most one in-flight request per backend connection."""

    def __init__(self, ctx: NesContext, *, promote: Optional[Callable[[str], bool]] = None) -> None:
        self._ctx = ctx
        self._promote = promote

    def update(
        self,
        *,
        force_render: bool = False,
        trigger_kind: TriggerKind = TriggerKind.AUTOMATIC,
    ) -> bool:
        """Start a new suggestion cycle for the current document.

        All existing state is cleared first, so only one cycle is ever live.
        Returns ``True`` when a request was issued.
        """

        ctx = self._ctx
        clear(ctx)
        document_id = ctx.host.current_document_id
        if document_id is None or not ctx.is_enabled(document_id):
            return False
        connection = ctx.connections.connection_for(document_id)
        if connection is None:
            LOGGER.debug("No suggestion backend attached to %s", document_id)
            return False

        params = self.build_params(document_id, connection, trigger_kind)
        handle = InFlightRequest(connection_id=connection.id, document_id=document_id)
        ctx.requests[connection.id] = handle

        def _on_response(error: Optional[BaseException], result: Any, response: ResponseContext) -> None:
            self.handle_response(error, result, response, handle=handle, force_render=force_render)

        ok, request_id = connection.request(ctx.settings.request_method, params, _on_response)
        if not ok or request_id is None:
            if ctx.requests.get(connection.id) is handle:
                del ctx.requests[connection.id]
            LOGGER.debug("Connection %s refused suggestion request", connection.id)
            return False
        if ctx.requests.get(connection.id) is handle:
            handle.request_id = request_id
        ctx.bus.publish(NesRequestIssued(connection_id=connection.id, request_id=request_id, document_id=document_id))
        return True

    def build_params(
        self,
        document_id: str,
        connection: BackendConnection,
        trigger_kind: TriggerKind = TriggerKind.AUTOMATIC,
    ) -> Dict[str, Any]:
        """Position-based request params in the connection's position encoding."""

        host = self._ctx.host
        document = host.get(document_id)
        cursor = host.cursor(document_id)
        line_text = document.line_text(cursor.line) if document is not None else ""
        character = from_column(line_text, cursor.character, connection.offset_encoding)
        return {
            "textDocument": {"uri": document_id, "version": host.version(document_id)},
            "position": {"line": cursor.line, "character": character},
            "context": {"triggerKind": int(trigger_kind)},
        }

    def handle_response(
        self,
        error: Optional[BaseException],
        result: Any,
        response: ResponseContext,
        *,
        handle: Optional[InFlightRequest] = None,
        force_render: bool = False,
    ) -> None:
        """Turn a backend response into the new *pending* generation.

        Responses for a request that is no longer in flight (cancelled or
        superseded) are ignored, as are failed responses.
        """

        ctx = self._ctx
        current = ctx.requests.get(response.connection_id)
        if handle is None:
            is_current = current is not None and current.request_id == response.request_id
        else:
            is_current = current is handle
        if not is_current:
            LOGGER.debug(
                "Ignoring stale response %s from connection %s",
                response.request_id,
                response.connection_id,
            )
            return
        del ctx.requests[response.connection_id]

        connection = ctx.connections.get(response.connection_id)
        if error is not None or connection is None:
            LOGGER.debug("Dropping suggestion response from %s: %s", response.connection_id, error or "connection closed")
            return

        payload = result if isinstance(result, dict) else {}
        raw_edits = payload.get("edits") or []
        if not isinstance(raw_edits, list):
            LOGGER.debug(
                "Ignoring non-list edits (%s) from connection %s", type(raw_edits).__name__, response.connection_id
            )
            raw_edits = []
        records = []
        for raw in raw_edits:
            if not isinstance(raw, dict):
                continue
            record = EditRecord.from_payload(connection, raw, ctx.host, diff_provider=ctx.diff_provider)
            if record.is_valid() and ctx.store.is_readable(record):
                records.append(record)
        ctx.store.replace_pending(records)
        LOGGER.debug(
            "Received %d edit(s), %d pending from connection %s",
            len(raw_edits),
            len(records),
            response.connection_id,
        )

        document_id = ctx.host.current_document_id
        if force_render and self._promote is not None and document_id is not None:
            self._promote(document_id)

    def cancel(self) -> int:
        return cancel(self._ctx)

    def clear(self) -> None:
        clear(self._ctx)


__all__ = ["RequestCoordinator", "TriggerKind", "cancel", "clear"]

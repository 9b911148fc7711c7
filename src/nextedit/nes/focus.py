"""Deduplicated "document focused" notifications per backend connection."""

from __future__ import annotations

import logging

from ..events import DocumentFocused
from ..services.backend import DID_FOCUS_METHOD
from .context import NesContext

LOGGER = logging.getLogger(__name__)


class FocusTracker:
    """Sends ``textDocument/didFocus`` at most once per (connection, document)."""

    def __init__(self, ctx: NesContext) -> None:
        self._ctx = ctx

    def notify_focus(self) -> int:
        """Announce the current document to connections that have not seen it.

        Returns the number of notifications sent.
        """

        ctx = self._ctx
        if not ctx.enabled:
            return 0
        document = ctx.host.current_document
        if document is None or not document.is_normal:
            return 0

        sent = 0
        for connection in ctx.connections.connections_for(document.document_id):
            if ctx.focus_notified.get(connection.id) == document.document_id:
                continue
            ctx.focus_notified[connection.id] = document.document_id
            connection.notify(DID_FOCUS_METHOD, {"textDocument": {"uri": document.document_id}})
            ctx.bus.publish(DocumentFocused(connection_id=connection.id, document_id=document.document_id))
            sent += 1
        if sent:
            LOGGER.debug("Sent focus for %s to %d connection(s)", document.document_id, sent)
        return sent

    def forget(self, connection_id: int) -> None:
        self._ctx.focus_notified.pop(connection_id, None)


__all__ = ["FocusTracker"]

"""Promotion of pending edits, application, and cursor jumps."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..core.ranges import Position
from ..editor.patches import DiffTarget, PatchApplyError, TextEdit
from ..events import NesDone, NesEditsChanged
from ..services.backend import BackendConnection
from .context import NesContext
from .edit import EditRecord
from .requests import clear

LOGGER = logging.getLogger(__name__)


def apply_target(record: EditRecord) -> Position:
    """Return where the cursor belongs after ``record`` was applied.

    That is the end of the inserted text, not the end of the replaced range.
    """

    start = record.start or Position()
    target = record.diff.to if record.diff is not None else DiffTarget.from_text(record.text)
    line_count = len(target.lines)
    if line_count > 1:
        return Position(start.line + line_count - 1, len(target.text))
    return Position(start.line, start.character + len(target.text))


class PromotionEngine:
    """Moves pending edits into view and performs the accept action."""

    def __init__(self, ctx: NesContext) -> None:
        self._ctx = ctx

    def promote(self, document_id: str) -> bool:
        """Make the pending edits of ``document_id`` the visible generation.

        Does nothing, and signals nothing, when no pending edit is readable.
        """

        ctx = self._ctx
        if not ctx.is_enabled(document_id):
            return False
        pending = ctx.store.query(document_id, "pending")
        if not pending:
            return False
        ctx.store.replace_active(document_id, pending)
        ctx.store.drop_pending(document_id)
        LOGGER.debug("Promoted %d edit(s) for %s", len(pending), document_id)
        ctx.bus.publish(NesEditsChanged(document_id=document_id))
        return True

    def apply(self, document_id: str | None = None) -> bool:
        """Accept the active edits of ``document_id`` (default: current document).

        The document mutation, follow-up commands, and cursor jump run on the
        task queue; all suggestion state is cleared before returning.
        """

        ctx = self._ctx
        document_id = document_id or ctx.host.current_document_id
        if document_id is None:
            return False
        if not ctx.is_enabled(document_id):
            clear(ctx)
            return False
        edits = ctx.store.query(document_id, "active")
        connection = self._connection_for(document_id, edits)
        if connection is None or not edits:
            return False

        text_edits = [edit.to_text_edit() for edit in edits]
        version = ctx.host.version(document_id)
        ctx.tasks.schedule(lambda: self._apply_now(connection, document_id, version, edits, text_edits))
        clear(ctx)
        return True

    def jump_to_edit(self) -> bool:
        """Move the cursor to the first hunk of the current document's first active edit."""

        ctx = self._ctx
        document_id = ctx.host.current_document_id
        if document_id is None or not ctx.is_enabled(document_id):
            return False
        edits = ctx.store.query(document_id, "active")
        if not edits:
            return False
        diff = edits[0].diff
        if diff is None or not diff.hunks:
            # backends occasionally propose an edit with no changes
            return False
        return self.jump(diff.hunks[0].pos, document_id)

    def jump(self, position: Position, document_id: str | None = None) -> bool:
        """Schedule a cursor move to ``position``.

        Returns ``False`` when the cursor already sits there.
        """

        ctx = self._ctx
        host = ctx.host
        document_id = document_id or host.current_document_id
        if document_id is None:
            return False
        target = host.fix_position(document_id, position)
        if host.cursor(document_id) == target:
            return False

        def _move() -> None:
            if not host.is_valid(document_id):
                return
            if ctx.settings.jump.jump_history:
                host.push_jump(document_id, host.cursor(document_id))
            host.set_cursor(document_id, target)

        ctx.tasks.schedule(_move)
        return True

    def _connection_for(self, document_id: str, edits: Sequence[EditRecord]) -> Optional[BackendConnection]:
        connections = self._ctx.connections
        if edits:
            owner = connections.get(edits[-1].connection_id)
            if owner is not None:
                return owner
        return connections.connection_for(document_id)

    def _apply_now(
        self,
        connection: BackendConnection,
        document_id: str,
        version: int | None,
        edits: Sequence[EditRecord],
        text_edits: Sequence[TextEdit],
    ) -> None:
        host = self._ctx.host
        if host.version(document_id) != version:
            LOGGER.debug("Skipping apply for %s: document changed before it ran", document_id)
            return
        try:
            host.apply_text_edits(document_id, text_edits, encoding=edits[-1].encoding)
        except PatchApplyError as exc:
            LOGGER.warning("Failed to apply suggestion to %s: %s", document_id, exc.details())
            return

        self._ctx.tasks.schedule(lambda: self._finish(connection, document_id, edits))
        self.jump(apply_target(edits[-1]), document_id)

    def _finish(self, connection: BackendConnection, document_id: str, edits: Sequence[EditRecord]) -> None:
        for edit in edits:
            if edit.command is None:
                continue
            try:
                connection.exec_command(edit.command, document_id=document_id)
            except Exception:
                LOGGER.exception("Follow-up command failed for %s", document_id)
        self._ctx.bus.publish(NesDone(connection_id=connection.id, document_id=document_id))


__all__ = ["PromotionEngine", "apply_target"]

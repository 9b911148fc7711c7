"""Workspace model hosting open documents, cursors, and the jump list."""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Protocol, Sequence

from ..core.ranges import Position, PositionEncoding
from .document_model import DocumentMetadata, DocumentState
from .patches import PatchApplyError, PatchResult, TextEdit, apply_text_edits

__all__ = ["Workspace", "DocumentClosedListener", "JumpEntry"]

LOGGER = logging.getLogger(__name__)

JumpEntry = tuple[str, Position]


class DocumentClosedListener(Protocol):
    """Callback fired after a document is closed."""

    def __call__(self, document_id: str) -> None:  # pragma: no cover - protocol
        ...


class Workspace:
    """Manages open documents and the editor's current document and cursor.

    Cursor positions use Python string columns; conversion from a backend's
    position encoding happens before anything reaches the workspace.
    """

    def __init__(self) -> None:
        self._documents: Dict[str, DocumentState] = {}
        self._order: List[str] = []
        self._current_id: str | None = None
        self._cursors: Dict[str, Position] = {}
        self._jumplist: List[JumpEntry] = []
        self._close_listeners: List[DocumentClosedListener] = []

    # ------------------------------------------------------------------
    # Document lifecycle
    # ------------------------------------------------------------------
    def open(
        self,
        document_id: str,
        text: str = "",
        *,
        version: int = 0,
        kind: str = "",
        language: str = "plaintext",
        make_current: bool = True,
    ) -> DocumentState:
        """Open (or reopen) ``document_id`` and optionally focus it."""

        document = DocumentState(
            document_id=document_id,
            text=text,
            version=version,
            kind=kind,
            metadata=DocumentMetadata(language=language),
        )
        if document_id not in self._documents:
            self._order.append(document_id)
        self._documents[document_id] = document
        self._cursors.setdefault(document_id, Position())
        if make_current or self._current_id is None:
            self._current_id = document_id
        LOGGER.debug("Opened document %s (version=%s, kind=%r)", document_id, version, kind)
        return document

    def close(self, document_id: str) -> bool:
        """Close ``document_id`` and notify listeners. Returns ``False`` if unknown."""

        document = self._documents.pop(document_id, None)
        if document is None:
            return False
        self._order.remove(document_id)
        self._cursors.pop(document_id, None)
        if self._current_id == document_id:
            self._current_id = self._order[-1] if self._order else None
        LOGGER.debug("Closed document %s", document_id)
        for listener in list(self._close_listeners):
            try:
                listener(document_id)
            except Exception:
                LOGGER.debug("Close listener %r failed", listener, exc_info=True)
        return True

    def add_close_listener(self, listener: DocumentClosedListener) -> None:
        if listener not in self._close_listeners:
            self._close_listeners.append(listener)

    def remove_close_listener(self, listener: DocumentClosedListener) -> None:
        if listener in self._close_listeners:
            self._close_listeners.remove(listener)

    def unload(self, document_id: str) -> None:
        """Mark a document as unloaded while keeping it registered."""

        document = self._documents.get(document_id)
        if document is not None:
            document.loaded = False

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get(self, document_id: str) -> Optional[DocumentState]:
        return self._documents.get(document_id)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._documents

    def __iter__(self) -> Iterator[DocumentState]:
        return (self._documents[document_id] for document_id in self._order)

    def is_valid(self, document_id: str) -> bool:
        return document_id in self._documents

    def is_loaded(self, document_id: str) -> bool:
        document = self._documents.get(document_id)
        return document is not None and document.loaded

    def version(self, document_id: str) -> int | None:
        document = self._documents.get(document_id)
        return document.version if document is not None else None

    @property
    def current_document_id(self) -> str | None:
        return self._current_id

    @property
    def current_document(self) -> Optional[DocumentState]:
        if self._current_id is None:
            return None
        return self._documents.get(self._current_id)

    def set_current(self, document_id: str) -> None:
        if document_id not in self._documents:
            raise KeyError(f"Unknown document: {document_id}")
        self._current_id = document_id

    # ------------------------------------------------------------------
    # Cursor and jump list
    # ------------------------------------------------------------------
    def cursor(self, document_id: str | None = None) -> Position:
        target = document_id or self._current_id
        if target is None:
            return Position()
        return self._cursors.get(target, Position())

    def set_cursor(self, document_id: str, position: Position) -> Position:
        """Move the cursor of ``document_id``, clamped into the document."""

        fixed = self.fix_position(document_id, position)
        self._cursors[document_id] = fixed
        return fixed

    def push_jump(self, document_id: str, position: Position) -> None:
        self._jumplist.append((document_id, position))

    @property
    def jumplist(self) -> Sequence[JumpEntry]:
        return tuple(self._jumplist)

    def fix_position(self, document_id: str, position: Position) -> Position:
        """Translate ``position`` into an addressable position of the document.

        Lines past the end clamp to the last line, columns past the end of a
        line clamp to its length.
        """

        document = self._documents.get(document_id)
        if document is None:
            return position
        lines = document.lines
        line = min(position.line, len(lines) - 1)
        character = min(position.character, len(lines[line]))
        return Position(line, character)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def replace_text(self, document_id: str, text: str) -> DocumentState:
        """Replace the whole text of ``document_id`` (a user edit)."""

        document = self._require(document_id)
        document.update_text(text)
        self._clamp_cursor(document_id)
        return document

    def apply_text_edits(
        self,
        document_id: str,
        edits: Sequence[TextEdit],
        *,
        encoding: PositionEncoding = "utf-16",
    ) -> PatchResult:
        """Apply ``edits`` as one versioned mutation of ``document_id``."""

        document = self._require(document_id)
        result = apply_text_edits(document.text, edits, encoding=encoding)
        document.update_text(result.text)
        self._clamp_cursor(document_id)
        LOGGER.debug(
            "Applied %d edit(s) to %s (%s, version=%s)",
            len(edits),
            document_id,
            result.summary,
            document.version,
        )
        return result

    def _require(self, document_id: str) -> DocumentState:
        document = self._documents.get(document_id)
        if document is None:
            raise PatchApplyError(f"Unknown document: {document_id}", reason="unknown_document")
        return document

    def _clamp_cursor(self, document_id: str) -> None:
        current = self._cursors.get(document_id)
        if current is not None:
            self._cursors[document_id] = self.fix_position(document_id, current)

"""Immutable record describing one proposed next edit."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..core.ranges import Position, PositionEncoding, Range, to_column
from ..editor.patches import DiffProvider, DiffResult, TextEdit, compute_diff
from ..editor.workspace import Workspace
from ..services.backend import BackendConnection

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class EditRecord:
    """One edit proposed by a backend connection for one document.

    ``range`` stays in the connection's position encoding so it can be applied
    exactly as the backend sent it; ``start`` and the diff hunks are already
    translated to Python string columns.
    """

    connection_id: int
    document_id: str
    expected_version: int | None
    range: Optional[Range]
    text: str
    encoding: PositionEncoding = "utf-16"
    command: Optional[Mapping[str, Any]] = None
    diff: Optional[DiffResult] = None
    start: Optional[Position] = None

    def is_valid(self) -> bool:
        if self.range is None or not self.document_id or self.expected_version is None:
            return False
        return not self.range.is_empty or bool(self.text) or self.command is not None

    def is_empty(self) -> bool:
        return self.diff is None or self.diff.is_empty

    def to_text_edit(self) -> TextEdit:
        if self.range is None:
            raise ValueError("Cannot build a text edit from a record without a range")
        return TextEdit(range=self.range, text=self.text)

    @classmethod
    def from_payload(
        cls,
        connection: BackendConnection,
        payload: Mapping[str, Any],
        host: Workspace,
        *,
        diff_provider: DiffProvider = compute_diff,
    ) -> EditRecord:
        """Build a record from a raw backend edit.

        Malformed payloads still produce a record; it simply fails
        :meth:`is_valid` and is dropped by the caller.
        """

        text_document = payload.get("textDocument")
        if not isinstance(text_document, Mapping):
            text_document = {}
        document_id = str(text_document.get("uri") or "")
        version = _coerce_version(text_document.get("version"))
        try:
            edit_range: Optional[Range] = Range.from_value(payload.get("range"))
        except ValueError:
            LOGGER.debug("Dropping malformed range in edit for %s", document_id or "<unknown>")
            edit_range = None
        text = payload.get("text")
        if not isinstance(text, str):
            text = payload.get("newText") if isinstance(payload.get("newText"), str) else ""
        command = payload.get("command")
        if not isinstance(command, Mapping):
            command = None

        encoding = connection.offset_encoding
        diff: Optional[DiffResult] = None
        start: Optional[Position] = None
        if edit_range is not None and document_id:
            resolved = _resolve_span(host, document_id, edit_range, encoding)
            if resolved is not None:
                start, original = resolved
                diff = diff_provider(original, text).shifted(start)

        return cls(
            connection_id=connection.id,
            document_id=document_id,
            expected_version=version,
            range=edit_range,
            text=text,
            encoding=encoding,
            command=command,
            diff=diff,
            start=start,
        )


def _coerce_version(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _resolve_span(
    host: Workspace,
    document_id: str,
    edit_range: Range,
    encoding: PositionEncoding,
) -> tuple[Position, str] | None:
    """Return the range start in string columns and the text it covers."""

    document = host.get(document_id)
    if document is None:
        return None
    lines = document.lines
    last_line = len(lines)
    for position in (edit_range.start, edit_range.end):
        if position.line > last_line or (position.line == last_line and position.character > 0):
            return None
    start = _to_string_position(lines, edit_range.start, encoding)
    end = _to_string_position(lines, edit_range.end, encoding)
    original = document.text[document.offset_at(start) : document.offset_at(end)]
    return start, original


def _to_string_position(lines: list[str], position: Position, encoding: PositionEncoding) -> Position:
    if position.line >= len(lines):
        return Position(position.line, 0)
    return Position(position.line, to_column(lines[position.line], position.character, encoding))


__all__ = ["EditRecord"]

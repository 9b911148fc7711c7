"""Dataclasses representing open document state."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..core.ranges import Position


@dataclass(slots=True)
class DocumentMetadata:
    """Metadata describing an open document."""

    language: str = "plaintext"


@dataclass(slots=True)
class DocumentState:
    """Live state of one open document.

    ``kind`` mirrors an editor buffer type: the empty string marks a normal
    file-backed document, anything else (``"nofile"``, ``"help"``,
    ``"terminal"``...) marks a special buffer. ``version`` increases on every
    text mutation and is what suggestions are checked against.
    """

    document_id: str
    text: str = ""
    version: int = 0
    kind: str = ""
    loaded: bool = True
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)

    @property
    def lines(self) -> list[str]:
        """Return the document split into lines without terminators."""

        return self.text.split("\n")

    @property
    def is_normal(self) -> bool:
        return self.kind == ""

    def line_text(self, line: int) -> str:
        lines = self.lines
        if 0 <= line < len(lines):
            return lines[line]
        return ""

    def offset_at(self, position: Position) -> int:
        """Return the absolute string offset for ``position`` (Python columns)."""

        lines = self.lines
        if position.line >= len(lines):
            return len(self.text)
        offset = sum(len(line) + 1 for line in lines[: position.line])
        return offset + min(position.character, len(lines[position.line]))

    def update_text(self, new_text: str) -> None:
        """Replace the document text and bump the version."""

        self.text = new_text
        self.version += 1

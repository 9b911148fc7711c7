"""Structured helpers for line/character positions and ranges."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

PositionEncoding = Literal["utf-8", "utf-16", "utf-32"]

_SUPPORTED_ENCODINGS: frozenset[str] = frozenset({"utf-8", "utf-16", "utf-32"})


def normalize_encoding(value: str | None) -> PositionEncoding:
    """Return a supported position encoding, defaulting to ``utf-16``."""

    token = (value or "utf-16").strip().lower().replace("_", "-")
    if token in {"utf8", "utf16", "utf32"}:
        token = f"utf-{token[3:]}"
    if token not in _SUPPORTED_ENCODINGS:
        return "utf-16"
    return token  # type: ignore[return-value]


def _unit_width(char: str, encoding: PositionEncoding) -> int:
    if encoding == "utf-32":
        return 1
    if encoding == "utf-8":
        return len(char.encode("utf-8"))
    return 2 if ord(char) > 0xFFFF else 1


def to_column(line_text: str, units: int, encoding: PositionEncoding = "utf-16") -> int:
    """Convert an encoded character offset into a Python string index.

    Offsets pointing past the end of the line clamp to the line length, and
    offsets landing inside a multi-unit character resolve to the index after it.
    """

    if units <= 0:
        return 0
    consumed = 0
    for index, char in enumerate(line_text):
        if consumed >= units:
            return index
        consumed += _unit_width(char, encoding)
    return len(line_text)


def from_column(line_text: str, column: int, encoding: PositionEncoding = "utf-16") -> int:
    """Convert a Python string index into an encoded character offset."""

    column = max(0, min(column, len(line_text)))
    return sum(_unit_width(char, encoding) for char in line_text[:column])


@dataclass(slots=True, frozen=True, order=True)
class Position:
    """Zero-based line/character position inside a document."""

    line: int = 0
    character: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "line", self._coerce(self.line, "line"))
        object.__setattr__(self, "character", self._coerce(self.character, "character"))

    @staticmethod
    def _coerce(value: Any, label: str) -> int:
        try:
            number = int(value)
        except (TypeError, ValueError, OverflowError) as exc:
            raise ValueError(f"Position {label} must be an integer") from exc
        return max(0, number)

    def to_dict(self) -> dict[str, int]:
        return {"line": self.line, "character": self.character}

    @classmethod
    def from_value(cls, value: Any) -> Position:
        """Coerce an LSP-style mapping or a ``(line, character)`` pair."""

        if isinstance(value, Position):
            return value
        if isinstance(value, Mapping):
            if "line" not in value or "character" not in value:
                raise ValueError("Position mappings require line and character keys")
            return cls(value["line"], value["character"])
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return cls(value[0], value[1])
        raise ValueError(f"Unsupported position payload: {value!r}")


@dataclass(slots=True, frozen=True)
class Range:
    """Span between two positions, normalised so ``start <= end``."""

    start: Position
    end: Position

    def __post_init__(self) -> None:
        if self.end < self.start:
            start, end = self.end, self.start
            object.__setattr__(self, "start", start)
            object.__setattr__(self, "end", end)

    @property
    def is_empty(self) -> bool:
        """Return ``True`` when the range collapses to a caret."""

        return self.start == self.end

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {"start": self.start.to_dict(), "end": self.end.to_dict()}

    @classmethod
    def from_value(cls, value: Any) -> Range:
        """Coerce an LSP range mapping (``{"start": ..., "end": ...}``)."""

        if isinstance(value, Range):
            return value
        if not isinstance(value, Mapping):
            raise ValueError("Range payload must be a mapping")
        if "start" not in value or "end" not in value:
            raise ValueError("Range mappings require start and end keys")
        return cls(Position.from_value(value["start"]), Position.from_value(value["end"]))


__all__ = [
    "Position",
    "PositionEncoding",
    "Range",
    "from_column",
    "normalize_encoding",
    "to_column",
]

"""Range-based text edit application and line diff helpers."""

from __future__ import annotations

from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import List, Protocol, Sequence, Tuple

from ..core.ranges import Position, PositionEncoding, Range, to_column


class PatchApplyError(RuntimeError):
    """Raised when text edits cannot be applied cleanly."""

    def __init__(
        self,
        message: str,
        *,
        reason: str = "range_mismatch",
        expected: str | None = None,
        actual: str | None = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.expected = expected
        self.actual = actual

    def details(self) -> dict[str, str | None]:
        return {
            "reason": self.reason,
            "expected": self.expected,
            "actual": self.actual,
        }


@dataclass(slots=True, frozen=True)
class TextEdit:
    """A replacement of ``range`` with ``text`` (LSP ``TextEdit`` shape)."""

    range: Range
    text: str

    def to_dict(self) -> dict[str, object]:
        return {"range": self.range.to_dict(), "newText": self.text}


@dataclass(slots=True)
class PatchResult:
    """Result of applying text edits to a document."""

    text: str
    summary: str


@dataclass(slots=True, frozen=True)
class Hunk:
    """One contiguous region of difference with its own position."""

    pos: Position
    before: Tuple[str, ...]
    after: Tuple[str, ...]


@dataclass(slots=True, frozen=True)
class DiffTarget:
    """The proposed text split into lines, plus its final line."""

    lines: Tuple[str, ...]
    text: str

    @classmethod
    def from_text(cls, text: str) -> DiffTarget:
        lines = tuple(text.split("\n"))
        return cls(lines=lines, text=lines[-1])


@dataclass(slots=True, frozen=True)
class DiffResult:
    """Ordered hunks between two texts and a description of the target text."""

    hunks: Tuple[Hunk, ...]
    to: DiffTarget

    @property
    def is_empty(self) -> bool:
        return not self.hunks

    def shifted(self, origin: Position) -> DiffResult:
        """Return a copy with hunk positions made relative to ``origin``.

        Hunks on the first line are offset by ``origin.character`` as well,
        since the diffed text started mid-line.
        """

        hunks = tuple(
            Hunk(
                pos=Position(
                    origin.line + hunk.pos.line,
                    hunk.pos.character + (origin.character if hunk.pos.line == 0 else 0),
                ),
                before=hunk.before,
                after=hunk.after,
            )
            for hunk in self.hunks
        )
        return DiffResult(hunks=hunks, to=self.to)


class DiffProvider(Protocol):
    """Callable computing a :class:`DiffResult` between two texts."""

    def __call__(self, before: str, after: str) -> DiffResult:  # pragma: no cover - protocol
        ...


def compute_diff(before: str, after: str) -> DiffResult:
    """Default line diff built on :class:`difflib.SequenceMatcher`.

    Hunk positions are zero-based. For replaced lines the column points at the
    first differing character so cursor jumps land on the actual change.
    """

    before_lines = before.split("\n")
    after_lines = after.split("\n")
    matcher = SequenceMatcher(a=before_lines, b=after_lines, autojunk=False)
    hunks: List[Hunk] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            continue
        column = 0
        if tag == "replace":
            column = _common_prefix(before_lines[i1], after_lines[j1])
        hunks.append(
            Hunk(
                pos=Position(i1, column),
                before=tuple(before_lines[i1:i2]),
                after=tuple(after_lines[j1:j2]),
            )
        )
    return DiffResult(hunks=tuple(hunks), to=DiffTarget.from_text(after))


def apply_text_edits(
    original_text: str,
    edits: Sequence[TextEdit],
    *,
    encoding: PositionEncoding = "utf-16",
) -> PatchResult:
    """Apply ``edits`` (all addressed against ``original_text``) in one pass.

    Edits starting at the same offset keep their given order, matching how
    language servers expect multiple inserts at one position to land.
    """

    if not edits:
        raise PatchApplyError("Text edits require at least one entry", reason="empty_edit_list")

    lines = original_text.split("\n")
    resolved: list[tuple[int, int, int, str]] = []
    for index, edit in enumerate(edits):
        start = _offset(lines, edit.range.start, encoding)
        end = _offset(lines, edit.range.end, encoding)
        resolved.append((start, end, index, edit.text))
    resolved.sort(key=lambda item: (item[0], item[1], item[2]))
    _ensure_non_overlapping(resolved)

    updated_text = original_text
    for start, end, _index, replacement in reversed(resolved):
        updated_text = updated_text[:start] + replacement + updated_text[end:]

    return PatchResult(text=updated_text, summary=_summarize_patch(original_text, updated_text))


def _offset(lines: Sequence[str], position: Position, encoding: PositionEncoding) -> int:
    if position.line > len(lines) or (position.line == len(lines) and position.character > 0):
        raise PatchApplyError(
            "Edit range exceeds document length",
            reason="range_overflow",
            expected=f"line <= {len(lines) - 1}",
            actual=f"line {position.line}",
        )
    if position.line == len(lines):
        return sum(len(line) + 1 for line in lines) - 1
    prefix = sum(len(line) + 1 for line in lines[: position.line])
    return prefix + to_column(lines[position.line], position.character, encoding)


def _ensure_non_overlapping(resolved: Sequence[tuple[int, int, int, str]]) -> None:
    previous_end = -1
    for start, end, _index, _text in resolved:
        if start < previous_end:
            raise PatchApplyError("Text edits may not overlap", reason="range_overlap")
        previous_end = max(previous_end, end)


def _common_prefix(left: str, right: str) -> int:
    count = 0
    for a, b in zip(left, right):
        if a != b:
            break
        count += 1
    return count


def _summarize_patch(before: str, after: str) -> str:
    delta = len(after) - len(before)
    if delta == 0:
        return "patch: Δ0"
    sign = "+" if delta > 0 else "-"
    return f"patch: {sign}{abs(delta)} chars"


__all__ = [
    "DiffProvider",
    "DiffResult",
    "DiffTarget",
    "Hunk",
    "PatchApplyError",
    "PatchResult",
    "TextEdit",
    "apply_text_edits",
    "compute_diff",
]

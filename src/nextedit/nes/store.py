"""Pending and active edit collections with read-time staleness filtering."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Literal, Sequence

from ..editor.workspace import Workspace
from .edit import EditRecord

LOGGER = logging.getLogger(__name__)

Source = Literal["pending", "active"]


class EditStore:
    """Holds the *pending* and *active* edit generations.

    Nothing is pruned eagerly: stale, disabled, or degenerate records stay in
    the collections until replaced and are filtered out on every read.
    """

    def __init__(self, host: Workspace, is_enabled: Callable[[str], bool]) -> None:
        self._host = host
        self._is_enabled = is_enabled
        self._pending: List[EditRecord] = []
        self._active: List[EditRecord] = []

    @property
    def pending(self) -> Sequence[EditRecord]:
        return tuple(self._pending)

    @property
    def active(self) -> Sequence[EditRecord]:
        return tuple(self._active)

    def is_readable(self, record: EditRecord) -> bool:
        """Return ``True`` when ``record`` may still be shown or applied."""

        document_id = record.document_id
        if not (self._host.is_valid(document_id) and self._host.is_loaded(document_id)):
            return False
        if record.expected_version != self._host.version(document_id):
            return False
        if not self._is_enabled(document_id):
            return False
        return not record.is_empty()

    def query(self, document_id: str | None = None, source: Source = "active") -> List[EditRecord]:
        """Return read-eligible records of ``source``, optionally for one document."""

        records = self._pending if source == "pending" else self._active
        return [
            record
            for record in records
            if self.is_readable(record) and (document_id is None or record.document_id == document_id)
        ]

    def replace_pending(self, records: Iterable[EditRecord]) -> None:
        self._pending = list(records)

    def replace_active(self, document_id: str, records: Iterable[EditRecord]) -> None:
        """Swap the active generation of ``document_id``; other documents keep theirs."""

        self._active = [record for record in self._active if record.document_id != document_id]
        self._active.extend(records)

    def drop_pending(self, document_id: str) -> None:
        self._pending = [record for record in self._pending if record.document_id != document_id]

    def discard_document(self, document_id: str) -> bool:
        """Forget every record of a closed document. Returns whether any was active."""

        had_active = any(record.document_id == document_id for record in self._active)
        LOGGER.debug("Discarding suggestions for closed document %s", document_id)
        self.drop_pending(document_id)
        self._active = [record for record in self._active if record.document_id != document_id]
        return had_active

    def reset(self) -> None:
        self._pending = []
        self._active = []

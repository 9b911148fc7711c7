"""Shared state passed to every suggestion lifecycle component."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

from ..editor.patches import DiffProvider, compute_diff
from ..editor.workspace import Workspace
from ..events import Event, EventBus
from ..services.backend import ConnectionRegistry
from ..services.settings import NesSettings
from .scheduler import TaskQueue
from .store import EditStore


@dataclass(slots=True, eq=False)
class InFlightRequest:
    """Handle for the single outstanding request of one connection.

    ``request_id`` is filled in once the connection accepts the request; the
    handle itself is what responses are matched against.
    """

    connection_id: int
    document_id: str
    request_id: int | None = None


@dataclass(eq=False)
class NesContext:
    """One suggestion cycle's worth of state.

    ``requests`` maps connection id to its single in-flight request.
    ``focus_notified`` maps connection id to the last document announced to it.
    """

    host: Workspace
    connections: ConnectionRegistry
    settings: NesSettings = field(default_factory=NesSettings)
    bus: EventBus[Event] = field(default_factory=EventBus)
    tasks: TaskQueue = field(default_factory=TaskQueue)
    diff_provider: DiffProvider = compute_diff
    enabled: bool = False
    requests: Dict[int, InFlightRequest] = field(default_factory=dict)
    focus_notified: Dict[int, str] = field(default_factory=dict)
    store: EditStore = field(init=False)

    def __post_init__(self) -> None:
        self.store = EditStore(self.host, self.is_enabled)

    def is_enabled(self, document_id: str | None = None) -> bool:
        """Return whether suggestions are enabled for ``document_id``.

        Defaults to the current document. Closed or unloaded documents are
        never enabled.
        """

        if not self.enabled:
            return False
        target = document_id if document_id is not None else self.host.current_document_id
        if target is None:
            return False
        if not (self.host.is_valid(target) and self.host.is_loaded(target)):
            return False
        return self.settings.is_enabled_for(target)

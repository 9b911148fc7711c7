"""Public next edit suggestion surface used by keybindings, status lines, and renderers."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from ..editor.patches import DiffProvider, compute_diff
from ..editor.workspace import Workspace
from ..events import Event, EventBus, NesEditsChanged
from ..services.backend import BackendConnection, ConnectionRegistry
from ..services.settings import EditorEvent, NesSettings
from .context import NesContext
from .engine import PromotionEngine
from .focus import FocusTracker
from .requests import RequestCoordinator, TriggerKind
from .scheduler import Debouncer, TaskQueue

LOGGER = logging.getLogger(__name__)

ESCAPE_KEY = "<Esc>"
FOCUS_EVENTS: tuple[str, ...] = ("buffer_enter", "window_enter")


class NesController:
    """Wires editor events to the suggestion lifecycle and exposes its actions.

    Events are ignored until the feature has been enabled once; enabling
    performs the one-time setup and immediately requests suggestions.
    """

    def __init__(
        self,
        host: Workspace,
        connections: ConnectionRegistry | None = None,
        *,
        settings: NesSettings | None = None,
        bus: EventBus[Event] | None = None,
        tasks: TaskQueue | None = None,
        diff_provider: DiffProvider = compute_diff,
    ) -> None:
        self._ctx = NesContext(
            host=host,
            connections=connections if connections is not None else ConnectionRegistry(),
            settings=settings if settings is not None else NesSettings(),
            bus=bus if bus is not None else EventBus(),
            tasks=tasks if tasks is not None else TaskQueue(),
            diff_provider=diff_provider,
        )
        self._engine = PromotionEngine(self._ctx)
        self._requests = RequestCoordinator(self._ctx, promote=self._engine.promote)
        self._focus = FocusTracker(self._ctx)
        self._debouncers: Dict[str, Debouncer] = {
            "trigger": Debouncer(self._ctx.settings.debounce_ms / 1000.0, name="trigger"),
            "focus": Debouncer(self._ctx.settings.focus_debounce_ms / 1000.0, name="focus"),
        }
        self._did_setup = False
        host.add_close_listener(self.on_document_closed)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def context(self) -> NesContext:
        return self._ctx

    @property
    def enabled(self) -> bool:
        return self._ctx.enabled

    @property
    def bus(self) -> EventBus[Event]:
        return self._ctx.bus

    @property
    def settings(self) -> NesSettings:
        return self._ctx.settings

    # ------------------------------------------------------------------
    # Enable / disable
    # ------------------------------------------------------------------
    def enable(self, enable: bool = True) -> None:
        ctx = self._ctx
        if ctx.enabled == enable:
            return
        ctx.enabled = enable
        LOGGER.info("Next edit suggestions %s", "enabled" if enable else "disabled")
        if enable:
            if ctx.settings.enabled is False:
                ctx.settings.enabled = True
            self._setup()
            self.update()
        else:
            self.clear()

    def toggle(self) -> None:
        self.enable(not self._ctx.enabled)

    def disable(self) -> None:
        self.enable(False)

    def _setup(self) -> None:
        if self._did_setup:
            return
        self._did_setup = True
        self._focus.notify_focus()

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    def update(
        self,
        *,
        force_render: bool = False,
        trigger_kind: TriggerKind = TriggerKind.AUTOMATIC,
    ) -> bool:
        """Request fresh suggestions for the current document."""

        return self._requests.update(force_render=force_render, trigger_kind=trigger_kind)

    def clear(self) -> None:
        """Cancel requests and hide every suggestion."""

        self._requests.clear()

    def render(self) -> bool:
        """Show the pending suggestions of the current document."""

        document_id = self._ctx.host.current_document_id
        if document_id is None or not self._ctx.is_enabled(document_id):
            return False
        return self._engine.promote(document_id)

    def jump(self) -> bool:
        return self._engine.jump_to_edit()

    def apply(self) -> bool:
        return self._engine.apply()

    def have(self) -> bool:
        """Return whether the current document has pending suggestions."""

        return self._has("pending")

    def have_rendered(self) -> bool:
        """Return whether the current document has visible suggestions."""

        return self._has("active")

    def _has(self, source: str) -> bool:
        document_id = self._ctx.host.current_document_id
        if document_id is None or not self._ctx.is_enabled(document_id):
            return False
        return bool(self._ctx.store.query(document_id, "pending" if source == "pending" else "active"))

    # ------------------------------------------------------------------
    # Editor events
    # ------------------------------------------------------------------
    def handle_event(
        self,
        name: str,
        *,
        document_id: str | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> None:
        """Route an editor event to the clear, trigger, and focus handlers."""

        if not self._did_setup:
            return
        settings = self._ctx.settings
        event = EditorEvent(
            name=name,
            document_id=document_id or self._ctx.host.current_document_id,
            data=dict(data or {}),
        )
        if name in settings.clear_events:
            self.clear()
        if name in settings.trigger_events:
            force_render = settings.should_auto_render(event)
            self._debouncers["trigger"].submit(lambda: self.update(force_render=force_render))
        if name in FOCUS_EVENTS:
            self._debouncers["focus"].submit(self._focus.notify_focus)

    def on_key(self, key: str) -> None:
        if self._did_setup and self._ctx.settings.clear_on_escape and key == ESCAPE_KEY:
            self.clear()

    def on_connection_attached(
        self,
        connection: BackendConnection,
        document_id: str,
        *,
        nes_capable: bool = True,
    ) -> None:
        connections = self._ctx.connections
        connections.register(connection, nes_capable=nes_capable)
        connections.attach(connection.id, document_id)
        if self._did_setup and nes_capable:
            self._focus.notify_focus()

    def on_connection_closed(self, connection_id: int) -> Optional[BackendConnection]:
        self._ctx.requests.pop(connection_id, None)
        self._focus.forget(connection_id)
        return self._ctx.connections.unregister(connection_id)

    def on_document_closed(self, document_id: str) -> None:
        self._ctx.connections.detach_document(document_id)
        if self._ctx.store.discard_document(document_id):
            self._ctx.bus.publish(NesEditsChanged(document_id=document_id))

    def shutdown(self) -> None:
        """Cancel debounced work, clear all state, and detach from the host."""

        for debouncer in self._debouncers.values():
            debouncer.cancel()
        self.clear()
        self._ctx.host.remove_close_listener(self.on_document_closed)


__all__ = ["ESCAPE_KEY", "FOCUS_EVENTS", "NesController"]

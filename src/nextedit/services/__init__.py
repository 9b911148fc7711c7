"""Service layer helpers (backend connections, settings)."""

from .backend import (
    AsyncioConnection,
    BackendConnection,
    BackendRequestError,
    ConnectionRegistry,
    ResponseContext,
)
from .settings import EditorEvent, JumpSettings, NesSettings, SettingsStore

__all__ = [
    "AsyncioConnection",
    "BackendConnection",
    "BackendRequestError",
    "ConnectionRegistry",
    "EditorEvent",
    "JumpSettings",
    "NesSettings",
    "ResponseContext",
    "SettingsStore",
]

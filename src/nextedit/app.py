"""Bootstrap helpers for embedding next edit suggestions in an editor host."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Optional

from .editor.workspace import Workspace
from .events import Event, EventBus
from .nes.controller import NesController
from .services.backend import ConnectionRegistry
from .services.settings import NesSettings, SettingsStore
from .utils import logging as logging_utils

_LOGGER = logging.getLogger(__name__)


def configure_logging(
    debug: bool = False,
    *,
    log_dir: Path | str | None = None,
    trace_lifecycle: bool = False,
    force: bool = False,
) -> Path:
    """Configure logging for the host process.

    Without ``debug`` the level comes from ``NEXTEDIT_LOG_LEVEL`` (default
    ``INFO``). ``trace_lifecycle`` logs suggestion requests, responses, and
    promotions at debug level even when the root level is higher.
    """

    return logging_utils.setup_logging(
        logging.DEBUG if debug else None,
        log_dir=log_dir,
        force=force,
        lifecycle_debug=trace_lifecycle,
    )


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> NesSettings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        settings = active_store.load(overrides=overrides)
    except Exception as exc:  # pragma: no cover
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        settings = NesSettings()
    return settings


def create_controller(
    host: Workspace | None = None,
    *,
    settings: NesSettings | None = None,
    settings_path: Optional[Path] = None,
    connections: ConnectionRegistry | None = None,
    bus: EventBus[Event] | None = None,
    enable: bool = False,
) -> NesController:
    """Build a :class:`NesController` around ``host`` with loaded settings."""

    controller = NesController(
        host if host is not None else Workspace(),
        connections,
        settings=settings if settings is not None else load_settings(settings_path),
        bus=bus,
    )
    if enable:
        controller.enable()
    return controller


__all__ = ["configure_logging", "create_controller", "load_settings"]

"""Logging setup for hosts embedding nextedit.

One rotating log file plus an optional console stream, both attached to the
root logger. Handlers do not filter; logger levels decide what is emitted,
which lets the suggestion lifecycle (``nextedit.nes``) be traced at debug
level while everything else stays at the root level.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

__all__ = ["LIFECYCLE_LOGGER", "get_log_path", "get_logger", "set_lifecycle_tracing", "setup_logging"]

LIFECYCLE_LOGGER = "nextedit.nes"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_FILE_NAME = "nextedit.log"

_DEFAULT_LOG_DIR = Path.home() / ".nextedit" / "logs"
_LOG_DIR_ENV = "NEXTEDIT_LOG_DIR"
_LOG_LEVEL_ENV = "NEXTEDIT_LOG_LEVEL"
_QUIET_LOGGERS: tuple[str, ...] = ("asyncio",)

_active_log_path: Path | None = None


def setup_logging(
    level: int | str | None = None,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
    lifecycle_debug: bool = False,
) -> Path:
    """Install the nextedit handlers on the root logger and return the log file.

    ``level`` accepts a logging level or its name; without one,
    ``NEXTEDIT_LOG_LEVEL`` is consulted before falling back to ``INFO``.
    Repeated calls are no-ops unless ``force`` is set.
    """

    global _active_log_path
    if _active_log_path is not None and not force:
        return _active_log_path

    resolved_level = _parse_level(level if level is not None else os.environ.get(_LOG_LEVEL_ENV))
    directory = Path(log_dir or os.environ.get(_LOG_DIR_ENV) or _DEFAULT_LOG_DIR).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    log_path = directory / LOG_FILE_NAME

    handlers = _build_handlers(log_path, console=console, max_bytes=max_bytes, backup_count=backup_count)
    logging.basicConfig(level=resolved_level, handlers=handlers, force=True)
    logging.captureWarnings(True)

    quiet_level = max(resolved_level, logging.WARNING)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)
    set_lifecycle_tracing(lifecycle_debug)

    _active_log_path = log_path
    logging.getLogger(__name__).debug("Logging to %s at %s", log_path, logging.getLevelName(resolved_level))
    return log_path


def set_lifecycle_tracing(enabled: bool) -> None:
    """Emit debug records of the suggestion lifecycle regardless of the root level."""

    logging.getLogger(LIFECYCLE_LOGGER).setLevel(logging.DEBUG if enabled else logging.NOTSET)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def get_log_path() -> Path | None:
    """Return the log file chosen by the last :func:`setup_logging` call."""

    return _active_log_path


def _build_handlers(log_path: Path, *, console: bool, max_bytes: int, backup_count: int) -> list[logging.Handler]:
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    ]
    if console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def _parse_level(value: int | str | None) -> int:
    if isinstance(value, int):
        return value
    if not value:
        return logging.INFO
    token = value.strip().upper()
    if token.isdigit():
        return int(token)
    named = logging.getLevelName(token)
    return named if isinstance(named, int) else logging.INFO

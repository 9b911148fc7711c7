"""Tests covering the utilities modules."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from nextedit.utils import logging as logging_utils


def test_setup_logging_creates_rotating_file(tmp_path: Path) -> None:
    log_dir = tmp_path / "logs"

    log_path = logging_utils.setup_logging(
        level=logging.INFO,
        log_dir=log_dir,
        console=False,
        force=True,
    )

    logger = logging_utils.get_logger("nextedit.tests")
    logger.info("Logging smoke test")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert log_path.exists()
    assert logging_utils.get_log_path() == log_path
    contents = log_path.read_text(encoding="utf-8")
    assert "Logging smoke test" in contents


def test_setup_logging_is_idempotent_without_force(tmp_path: Path) -> None:
    first = logging_utils.setup_logging(log_dir=tmp_path / "one", console=False, force=True)

    second = logging_utils.setup_logging(log_dir=tmp_path / "two", console=False)

    assert second == first
    assert not (tmp_path / "two").exists()


def test_setup_logging_respects_env_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("NEXTEDIT_LOG_DIR", str(tmp_path / "env-logs"))

    log_path = logging_utils.setup_logging(console=False, force=True)

    assert log_path == tmp_path / "env-logs" / "nextedit.log"


def test_noisy_loggers_are_quieted(tmp_path: Path) -> None:
    logging_utils.setup_logging(level=logging.DEBUG, log_dir=tmp_path, console=False, force=True)

    assert logging.getLogger("asyncio").level == logging.WARNING


def test_level_can_come_from_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("NEXTEDIT_LOG_LEVEL", "warning")

    logging_utils.setup_logging(log_dir=tmp_path, console=False, force=True)

    assert logging.getLogger().level == logging.WARNING


def test_unknown_level_name_falls_back_to_info(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("NEXTEDIT_LOG_LEVEL", "chatty")

    logging_utils.setup_logging(log_dir=tmp_path, console=False, force=True)

    assert logging.getLogger().level == logging.INFO


def test_lifecycle_tracing_bypasses_root_level(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("NEXTEDIT_LOG_LEVEL", raising=False)
    log_path = logging_utils.setup_logging(log_dir=tmp_path, console=False, force=True, lifecycle_debug=True)

    logging.getLogger("nextedit.nes.requests").debug("lifecycle detail")
    logging.getLogger("nextedit.services.settings").debug("settings detail")
    for handler in logging.getLogger().handlers:
        handler.flush()

    contents = log_path.read_text(encoding="utf-8")
    assert "lifecycle detail" in contents
    assert "settings detail" not in contents

    logging_utils.set_lifecycle_tracing(False)
    assert logging.getLogger(logging_utils.LIFECYCLE_LOGGER).level == logging.NOTSET

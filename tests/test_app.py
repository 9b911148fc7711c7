"""Tests covering the application bootstrap helpers."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

import nextedit
from nextedit import app
from nextedit.editor.workspace import Workspace
from nextedit.services.backend import ConnectionRegistry
from nextedit.services.settings import NesSettings, SettingsStore
from tests.helpers import FakeConnection


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("NEXTEDIT_ENABLED", "NEXTEDIT_CLEAR_ON_ESCAPE", "NEXTEDIT_DEBOUNCE_MS", "NEXTEDIT_JUMP_HISTORY"):
        monkeypatch.delenv(name, raising=False)


def test_package_exports_bootstrap_helpers() -> None:
    assert nextedit.create_controller is app.create_controller
    assert nextedit.__version__ == "0.1.0"


def test_load_settings_reads_path(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"debounce_ms": 33}), encoding="utf-8")

    settings = app.load_settings(path)

    assert settings.debounce_ms == 33


def test_load_settings_uses_given_store_and_overrides(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.json")
    store.save(NesSettings(debounce_ms=10))

    settings = app.load_settings(store=store, overrides={"focus_debounce_ms": 1})

    assert settings.debounce_ms == 10
    assert settings.focus_debounce_ms == 1


def test_create_controller_loads_settings_from_path(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    SettingsStore(path).save(NesSettings(clear_on_escape=False))

    controller = app.create_controller(settings_path=path)

    assert controller.settings.clear_on_escape is False
    assert controller.enabled is False
    assert controller.context.host.current_document_id is None


def test_create_controller_can_enable_immediately() -> None:
    host = Workspace()
    host.open("main.py", "print('hi')\n", version=1)
    connection = FakeConnection()
    registry = ConnectionRegistry()
    registry.register(connection)
    registry.attach(connection.id, "main.py")

    enabled = app.create_controller(host, settings=NesSettings(), connections=registry, enable=True)

    assert enabled.enabled is True
    assert connection.last_request.params["textDocument"] == {"uri": "main.py", "version": 1}


def test_configure_logging_writes_to_log_dir(tmp_path: Path) -> None:
    log_path = app.configure_logging(debug=True, log_dir=tmp_path / "logs", force=True)

    logging.getLogger("nextedit.tests").debug("debug line")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert log_path == tmp_path / "logs" / "nextedit.log"
    assert "debug line" in log_path.read_text(encoding="utf-8")

"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from nextedit.editor.workspace import Workspace
from nextedit.events import NesDone, NesEditsChanged
from nextedit.nes.controller import NesController
from nextedit.services.settings import NesSettings
from tests.helpers import FakeConnection

SAMPLE_TEXT = "import os\ny = 2\nprint(y)\n"


@pytest.fixture
def workspace() -> Workspace:
    host = Workspace()
    host.open("a.py", SAMPLE_TEXT, version=3, language="python")
    return host


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def settings() -> NesSettings:
    return NesSettings(debounce_ms=20, focus_debounce_ms=5)


@pytest.fixture
def controller(workspace: Workspace, connection: FakeConnection, settings: NesSettings) -> NesController:
    nes = NesController(workspace, settings=settings)
    nes.on_connection_attached(connection, "a.py")
    return nes


@pytest.fixture
def render_events(controller: NesController) -> list[NesEditsChanged]:
    received: list[NesEditsChanged] = []
    controller.bus.subscribe(NesEditsChanged, received.append)
    return received


@pytest.fixture
def done_events(controller: NesController) -> list[NesDone]:
    received: list[NesDone] = []
    controller.bus.subscribe(NesDone, received.append)
    return received

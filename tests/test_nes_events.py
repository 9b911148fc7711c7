"""Editor event routing and end-to-end runs on a live event loop."""

from __future__ import annotations

import asyncio
from typing import Any, Mapping

import pytest

from nextedit.core.ranges import Position
from nextedit.editor.workspace import Workspace
from nextedit.events import NesDone
from nextedit.nes.controller import ESCAPE_KEY, NesController
from nextedit.services.backend import AsyncioConnection
from nextedit.services.settings import NesSettings
from tests.helpers import FakeConnection, make_edit

LINE_TWO_EDIT = make_edit("a.py", 3, (1, 0), (1, 5), "x = 1")


def test_events_before_enable_are_ignored(controller: NesController, connection: FakeConnection) -> None:
    controller.handle_event("text_changed")
    controller.handle_event("buffer_enter")
    controller.on_key(ESCAPE_KEY)

    assert connection.requests == []
    assert connection.notifications == []


def test_trigger_event_without_loop_requests_immediately(
    controller: NesController, connection: FakeConnection
) -> None:
    controller.enable()

    controller.handle_event("insert_leave")

    assert len(connection.requests) == 2


def test_clear_event_drops_suggestions(controller: NesController, connection: FakeConnection) -> None:
    controller.enable()
    controller.update(force_render=True)
    connection.respond(result={"edits": [LINE_TWO_EDIT]})
    assert controller.have_rendered()

    controller.handle_event("insert_enter")

    assert controller.have_rendered() is False
    assert controller.context.store.active == ()


def test_escape_clears_unless_disabled_in_settings(controller: NesController, connection: FakeConnection) -> None:
    controller.enable()
    controller.update(force_render=True)
    connection.respond(result={"edits": [LINE_TWO_EDIT]})

    controller.settings.clear_on_escape = False
    controller.on_key(ESCAPE_KEY)
    assert controller.have_rendered() is True

    controller.settings.clear_on_escape = True
    controller.on_key("j")
    assert controller.have_rendered() is True
    controller.on_key(ESCAPE_KEY)
    assert controller.have_rendered() is False


@pytest.mark.asyncio
async def test_rapid_triggers_coalesce_into_one_request(
    controller: NesController, connection: FakeConnection
) -> None:
    controller.enable()
    assert len(connection.requests) == 1

    controller.handle_event("text_changed")
    controller.handle_event("text_changed")
    assert len(connection.requests) == 1

    await asyncio.sleep(0.08)

    assert len(connection.requests) == 2
    assert connection.cancelled == [1]


@pytest.mark.asyncio
async def test_triggered_response_renders_when_auto_render(
    controller: NesController, connection: FakeConnection
) -> None:
    controller.enable()
    controller.handle_event("insert_leave")
    await asyncio.sleep(0.05)

    connection.respond(result={"edits": [LINE_TWO_EDIT]})

    assert controller.have_rendered() is True


@pytest.mark.asyncio
async def test_auto_render_predicate_can_keep_edits_pending(
    controller: NesController, connection: FakeConnection
) -> None:
    controller.settings.auto_render = lambda event: event.name == "insert_leave"
    controller.enable()
    controller.handle_event("text_changed", data={"source": "paste"})
    await asyncio.sleep(0.05)

    connection.respond(result={"edits": [LINE_TWO_EDIT]})

    assert controller.have() is True
    assert controller.have_rendered() is False


@pytest.mark.asyncio
async def test_shutdown_cancels_debounced_update(controller: NesController, connection: FakeConnection) -> None:
    controller.enable()
    controller.handle_event("text_changed")

    controller.shutdown()
    await asyncio.sleep(0.05)

    assert len(connection.requests) == 1


@pytest.mark.asyncio
async def test_focus_events_are_debounced(
    workspace: Workspace, controller: NesController, connection: FakeConnection
) -> None:
    workspace.open("b.py", "pass\n", make_current=False)
    controller.on_connection_attached(connection, "b.py")
    controller.enable()

    workspace.set_current("b.py")
    controller.handle_event("buffer_enter")
    controller.handle_event("window_enter")
    await asyncio.sleep(0.03)

    uris = [params["textDocument"]["uri"] for _method, params in connection.notifications]
    assert uris == ["a.py", "b.py"]


@pytest.mark.asyncio
async def test_full_cycle_over_asyncio_connection() -> None:
    workspace = Workspace()
    workspace.open("a.py", "import os\ny = 2\nprint(y)\n", version=3)
    sent: list[tuple[str, Mapping[str, Any]]] = []

    async def send(method: str, params: Mapping[str, Any]) -> Any:
        sent.append((method, params))
        await asyncio.sleep(0)
        if method == "textDocument/copilotInlineEdit":
            command = {"command": "accepted", "arguments": [params["textDocument"]["version"]]}
            return {"edits": [make_edit("a.py", 3, (1, 0), (1, 5), "x = 1", command=command)]}
        return None

    connection = AsyncioConnection(send, name="copilot", offset_encoding="utf-16")
    controller = NesController(workspace, settings=NesSettings(debounce_ms=5))
    done: list[NesDone] = []
    controller.bus.subscribe(NesDone, done.append)
    controller.on_connection_attached(connection, "a.py")

    controller.enable()
    await asyncio.sleep(0.02)
    assert controller.have() is True

    assert controller.render() is True
    assert controller.apply() is True
    await asyncio.sleep(0.02)

    assert workspace.get("a.py").text == "import os\nx = 1\nprint(y)\n"
    assert workspace.cursor("a.py") == Position(1, 5)
    assert done == [NesDone(connection_id=connection.id, document_id="a.py")]
    methods = [method for method, _params in sent]
    assert methods[:2] == ["textDocument/didFocus", "textDocument/copilotInlineEdit"]
    assert ("workspace/executeCommand", {"command": "accepted", "arguments": [3]}) in sent


@pytest.mark.asyncio
async def test_superseded_asyncio_request_never_lands() -> None:
    workspace = Workspace()
    workspace.open("a.py", "import os\ny = 2\nprint(y)\n", version=3)
    calls: list[int] = []

    async def send(method: str, params: Mapping[str, Any]) -> Any:
        if method != "textDocument/copilotInlineEdit":
            return None
        calls.append(len(calls) + 1)
        replacement = f"x = {len(calls)}"
        await asyncio.sleep(0.01)
        return {"edits": [make_edit("a.py", 3, (1, 0), (1, 5), replacement)]}

    connection = AsyncioConnection(send)
    controller = NesController(workspace)
    controller.on_connection_attached(connection, "a.py")

    controller.enable()
    await asyncio.sleep(0)
    controller.update()
    await asyncio.sleep(0.05)

    assert calls == [1, 2]
    assert [record.text for record in controller.context.store.pending] == ["x = 2"]


@pytest.mark.asyncio
async def test_non_list_edits_over_asyncio_connection_are_dropped() -> None:
    workspace = Workspace()
    workspace.open("a.py", "import os\ny = 2\nprint(y)\n", version=3)

    async def send(method: str, params: Mapping[str, Any]) -> Any:
        return {"edits": 5} if method == "textDocument/copilotInlineEdit" else None

    loop_errors: list[dict[str, Any]] = []
    asyncio.get_running_loop().set_exception_handler(lambda _loop, context: loop_errors.append(context))
    connection = AsyncioConnection(send)
    controller = NesController(workspace)
    controller.on_connection_attached(connection, "a.py")

    controller.enable()
    await asyncio.sleep(0.02)

    assert loop_errors == []
    assert controller.context.store.pending == ()
    assert controller.context.requests == {}

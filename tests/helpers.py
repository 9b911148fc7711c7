"""Shared test helpers and stub classes.

Import from here instead of duplicating these classes in individual test files.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any, Mapping

from nextedit.services.backend import ResponseContext, ResponseHandler


@dataclass
class FakeRequest:
    request_id: int
    method: str
    params: dict[str, Any]
    handler: ResponseHandler


@dataclass
class FakeConnection:
    """In-memory :class:`BackendConnection` whose responses are driven by the test.

    Example::

        connection = FakeConnection()
        controller.on_connection_attached(connection, "a.py")
        controller.update()
        connection.respond(result={"edits": [make_edit("a.py", 0, (0, 0), (0, 0), "x")]})
    """

    id: int = 1
    name: str = "copilot"
    offset_encoding: str = "utf-16"
    accept: bool = True
    requests: list[FakeRequest] = field(default_factory=list)
    cancelled: list[int] = field(default_factory=list)
    notifications: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    commands: list[tuple[Mapping[str, Any], str]] = field(default_factory=list)
    _ids: Any = field(default_factory=lambda: itertools.count(1))

    def request(self, method: str, params: Mapping[str, Any], handler: ResponseHandler) -> tuple[bool, int | None]:
        if not self.accept:
            return False, None
        request_id = next(self._ids)
        self.requests.append(FakeRequest(request_id, method, dict(params), handler))
        return True, request_id

    def cancel_request(self, request_id: int) -> None:
        self.cancelled.append(request_id)

    def notify(self, method: str, params: Mapping[str, Any]) -> bool:
        self.notifications.append((method, dict(params)))
        return True

    def exec_command(self, command: Mapping[str, Any], *, document_id: str) -> None:
        self.commands.append((command, document_id))

    @property
    def last_request(self) -> FakeRequest:
        return self.requests[-1]

    def respond(
        self,
        request_id: int | None = None,
        *,
        result: Any = None,
        error: BaseException | None = None,
    ) -> None:
        """Deliver a response to ``request_id`` (default: the latest request)."""

        request = self.last_request if request_id is None else self._find(request_id)
        context = ResponseContext(connection_id=self.id, request_id=request.request_id, method=request.method)
        request.handler(error, result, context)

    def _find(self, request_id: int) -> FakeRequest:
        for request in self.requests:
            if request.request_id == request_id:
                return request
        raise KeyError(request_id)


def make_edit(
    uri: str,
    version: int,
    start: tuple[int, int],
    end: tuple[int, int],
    text: str,
    *,
    command: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a raw inline-edit payload as a backend would send it."""

    payload: dict[str, Any] = {
        "textDocument": {"uri": uri, "version": version},
        "range": {
            "start": {"line": start[0], "character": start[1]},
            "end": {"line": end[0], "character": end[1]},
        },
        "text": text,
    }
    if command is not None:
        payload["command"] = dict(command)
    return payload

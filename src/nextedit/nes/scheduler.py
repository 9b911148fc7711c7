"""Deferred FIFO task queue and async debounce helper."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import deque
from typing import Any, Callable, Deque

LOGGER = logging.getLogger(__name__)

Task = Callable[[], None]


class TaskQueue:
    """Runs callbacks at the next safe point, strictly in scheduling order.

    Tasks scheduled while the queue drains are appended behind everything
    already queued and run within the same drain. With a running asyncio loop
    the queue drains itself via ``loop.call_soon``; otherwise the host calls
    :meth:`run_pending` once its current synchronous work is finished.
    """

    def __init__(self, *, auto_drain: bool = True) -> None:
        self._queue: Deque[Task] = deque()
        self._auto_drain = auto_drain
        self._draining = False
        self._drain_scheduled = False

    def __len__(self) -> int:
        return len(self._queue)

    def schedule(self, task: Task) -> None:
        self._queue.append(task)
        if not self._auto_drain or self._draining or self._drain_scheduled:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._drain_scheduled = True
        loop.call_soon(self._drain_from_loop)

    def run_pending(self) -> int:
        """Run queued tasks until the queue is empty; returns how many ran."""

        if self._draining:
            return 0
        self._draining = True
        count = 0
        try:
            while self._queue:
                task = self._queue.popleft()
                count += 1
                try:
                    task()
                except Exception:
                    LOGGER.exception("Deferred task %r failed", task)
        finally:
            self._draining = False
        return count

    def clear(self) -> None:
        self._queue.clear()

    def _drain_from_loop(self) -> None:
        self._drain_scheduled = False
        self.run_pending()


class Debouncer:
    """Coalesces rapid-fire calls so only the last one runs after ``delay``."""

    def __init__(self, delay: float = 0.1, *, name: str = "debounce") -> None:
        self._delay = max(0.0, delay)
        self._name = name
        self._task: asyncio.Task[Any] | None = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def submit(self, callback: Callable[[], Any]) -> None:
        """Schedule ``callback``, cancelling any pending invocation.

        Without a running event loop the callback runs immediately.
        """

        self.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.debug("No running loop for %s debouncer; running immediately", self._name)
            result = callback()
            if inspect.isawaitable(result):
                asyncio.run(_await(result))
            return
        self._task = loop.create_task(self._runner(callback))

    def cancel(self) -> None:
        """Cancel any pending invocation."""

        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _runner(self, callback: Callable[[], Any]) -> None:
        try:
            await asyncio.sleep(self._delay)
        except asyncio.CancelledError:
            return
        try:
            result = callback()
            if inspect.isawaitable(result):
                await result
        except Exception:
            LOGGER.exception("Debounced %s callback failed", self._name)


async def _await(awaitable: Any) -> Any:
    return await awaitable


__all__ = ["Debouncer", "TaskQueue"]

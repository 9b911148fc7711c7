"""Event bus and the events published by the suggestion lifecycle.

Rendering layers, status lines, and telemetry subscribe here instead of
holding references to the controller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, TypeVar
from weakref import WeakMethod

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all bus events."""


# =============================================================================
# Suggestion lifecycle events
# =============================================================================


@dataclass(slots=True)
class NesEditsChanged(Event):
    """The set of visible suggestions changed; renderers should redraw.

    Attributes:
        document_id: Document whose active edits changed, or ``None`` when
            every document was cleared.
    """

    document_id: str | None = None


@dataclass(slots=True)
class NesDone(Event):
    """Emitted after a suggestion was applied and its commands were run.

    Attributes:
        connection_id: Backend connection that produced the suggestion.
        document_id: Document the suggestion was applied to.
    """

    connection_id: int
    document_id: str


@dataclass(slots=True)
class NesRequestIssued(Event):
    """Emitted when a suggestion request was accepted by a connection."""

    connection_id: int
    request_id: int
    document_id: str


@dataclass(slots=True)
class DocumentFocused(Event):
    """Emitted when a focus notification was sent to a connection."""

    connection_id: int
    document_id: str


_QUIET_EVENT_TYPES: frozenset[type] = frozenset({NesEditsChanged})

Unsubscribe = Callable[[], None]


class EventBus(Generic[E]):
    """Synchronous publish-subscribe bus keyed by event class.

    A handler subscribed to a class also receives its subclasses, so a
    subscription to :class:`Event` observes the whole lifecycle. Bound methods
    are held weakly and pruned once their owner is collected.
    Not thread-safe: publish and subscribe from the event loop thread only.
    """

    __slots__ = ("_subscriptions",)

    def __init__(self) -> None:
        self._subscriptions: Dict[type[Event], List[_Subscription]] = {}

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> Unsubscribe:
        """Register ``handler`` and return a callable that removes it again."""

        subscription = _Subscription.wrap(handler)
        self._subscriptions.setdefault(event_type, []).append(subscription)
        logger.debug("%s subscribed to %s", subscription.label, event_type.__name__)

        def _unsubscribe() -> None:
            bucket = self._subscriptions.get(event_type, [])
            if subscription in bucket:
                bucket.remove(subscription)

        return _unsubscribe

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the oldest registration of ``handler``; unknown handlers are ignored."""

        bucket = self._subscriptions.get(event_type, [])
        for subscription in bucket:
            if subscription.refers_to(handler):
                bucket.remove(subscription)
                return

    def publish(self, event: E) -> None:
        """Deliver ``event`` to every matching handler, most specific class first.

        A failing handler is logged and the remaining handlers still run.
        """

        event_type = type(event)
        targets = [
            (cls, subscription)
            for cls in event_type.__mro__
            if issubclass(cls, Event)
            for subscription in list(self._subscriptions.get(cls, ()))
        ]
        if not targets:
            return
        if event_type not in _QUIET_EVENT_TYPES:
            logger.debug("Publishing %s to %d handler(s)", event_type.__name__, len(targets))

        for cls, subscription in targets:
            handler = subscription.resolve()
            if handler is None:
                self._prune(cls, subscription)
                continue
            try:
                handler(event)
            except Exception:
                logger.exception("%s failed while handling %s", subscription.label, event_type.__name__)

    def clear(self) -> None:
        self._subscriptions.clear()

    def handler_count(self, event_type: type[E] | None = None) -> int:
        if event_type is not None:
            return len(self._subscriptions.get(event_type, ()))
        return sum(len(bucket) for bucket in self._subscriptions.values())

    def _prune(self, event_type: type[Event], subscription: _Subscription) -> None:
        bucket = self._subscriptions.get(event_type, [])
        if subscription in bucket:
            bucket.remove(subscription)


@dataclass(slots=True, eq=False)
class _Subscription:
    """One registered handler; bound methods are referenced weakly."""

    target: Any
    weak: bool
    label: str

    @classmethod
    def wrap(cls, handler: Handler) -> _Subscription:
        owner = getattr(handler, "__self__", None)
        func = getattr(handler, "__func__", None)
        if owner is not None and func is not None:
            label = f"{type(owner).__name__}.{func.__name__}"
            try:
                return cls(WeakMethod(handler), True, label)
            except TypeError:
                pass
        return cls(handler, False, getattr(handler, "__qualname__", repr(handler)))

    def resolve(self) -> Handler | None:
        return self.target() if self.weak else self.target

    def refers_to(self, handler: Handler) -> bool:
        current = self.resolve()
        return current is not None and current == handler


__all__ = [
    "DocumentFocused",
    "Event",
    "EventBus",
    "Handler",
    "NesDone",
    "NesEditsChanged",
    "NesRequestIssued",
    "Unsubscribe",
]

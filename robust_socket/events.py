"""Socket-style events and listener dispatch.

``EventTarget`` mirrors the event surface of a standard WebSocket: one
single-slot callback attribute per event type (``on_open``, ``on_message``,
...) plus a registry of listeners per type. Two synthetic types exist on
top of the standard four:

- ``down``: connectivity was lost, fired before any retry decision as a
  ``CloseEvent`` carrying the code and reason of the triggering close
- ``reopen``: connectivity came back after a ``down``
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

_LOGGER = logging.getLogger(__name__)


class EventType(str, Enum):
    """Closed set of event types dispatched by a robust socket."""

    OPEN = "open"
    MESSAGE = "message"
    ERROR = "error"
    CLOSE = "close"
    DOWN = "down"
    REOPEN = "reopen"


@dataclass
class Event:
    """Base event.

    Attributes:
        type: Event type.
        target: Object the event was dispatched on (set by dispatch).
        default_prevented: Set by a listener to suppress the event.
    """

    type: EventType
    target: Any = field(default=None, compare=False, repr=False)
    default_prevented: bool = field(default=False, compare=False)

    def prevent_default(self) -> None:
        """Mark the event as suppressed for the dispatching caller."""
        self.default_prevented = True


@dataclass
class MessageEvent(Event):
    """Inbound message."""

    type: EventType = EventType.MESSAGE
    data: Any = None


@dataclass
class ErrorEvent(Event):
    """Transport or listener error."""

    type: EventType = EventType.ERROR
    error: BaseException | None = None


@dataclass
class CloseEvent(Event):
    """Socket closure details.

    Attributes:
        code: WebSocket close code (1005 when none was received).
        reason: Close reason sent by the closing side.
        was_clean: Whether the closing handshake completed.
    """

    type: EventType = EventType.CLOSE
    code: int = 1005
    reason: str = ""
    was_clean: bool = True


Listener = Callable[[Event], Any]


class EventTarget:
    """Single-slot callbacks plus a listener registry per event type."""

    on_open: Listener | None = None
    on_message: Listener | None = None
    on_error: Listener | None = None
    on_close: Listener | None = None
    on_down: Listener | None = None
    on_reopen: Listener | None = None

    def __init__(self) -> None:
        self._listeners: dict[EventType, list[Listener]] = {
            event_type: [] for event_type in EventType
        }
        self._listener_tasks: set[asyncio.Task[Any]] = set()

    def add_event_listener(self, event_type: EventType | str, listener: Listener) -> None:
        """Register a listener; the same listener may be added twice."""
        self._listeners[EventType(event_type)].append(listener)

    def remove_event_listener(
        self, event_type: EventType | str, listener: Listener
    ) -> None:
        """Remove every registration of ``listener`` for ``event_type``."""
        event_type = EventType(event_type)
        self._listeners[event_type] = [
            registered
            for registered in self._listeners[event_type]
            if registered is not listener
        ]

    def listeners(self, event_type: EventType | str) -> tuple[Listener, ...]:
        """Registered listeners for a type, in registration order."""
        return tuple(self._listeners[EventType(event_type)])

    def dispatch_event(self, event: Event) -> bool:
        """Deliver ``event`` to the slot callback, then to listeners.

        Returns:
            False if a listener called ``prevent_default()``, True otherwise.
        """
        event_type = EventType(event.type)
        event.type = event_type
        event.target = self

        slot: Listener | None = getattr(self, f"on_{event_type.value}")
        # Snapshot so removal during dispatch does not affect this round.
        handlers = ((slot,) if slot is not None else ()) + tuple(
            self._listeners[event_type]
        )
        for handler in handlers:
            self._invoke(handler, event)
        return not event.default_prevented

    def _invoke(self, handler: Listener, event: Event) -> None:
        try:
            result = handler(event)
        except Exception as err:
            _LOGGER.exception("Listener for %s event failed", event.type.value)
            self._report_listener_error(event, err)
            return

        if inspect.iscoroutine(result):
            task = asyncio.get_running_loop().create_task(result)
            self._listener_tasks.add(task)
            task.add_done_callback(self._listener_task_done)

    def _listener_task_done(self, task: asyncio.Task[Any]) -> None:
        self._listener_tasks.discard(task)
        if task.cancelled():
            return
        err = task.exception()
        if err is not None:
            _LOGGER.error("Async listener failed: %s", err, exc_info=err)

    def _report_listener_error(self, event: Event, err: Exception) -> None:
        # Errors raised by error listeners are only logged.
        if event.type is EventType.ERROR:
            return
        self.dispatch_event(ErrorEvent(error=err))

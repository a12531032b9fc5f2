"""Named, cancellable timers owned by a connection."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from enum import Enum
from typing import Any


class TimerName(Enum):
    """Timers a connection can have pending."""

    CONNECT_TIMEOUT = "connect_timeout"
    RECONNECT = "reconnect"
    ALL_CLEAR = "all_clear"


class Timers:
    """At most one pending ``loop.call_later`` handle per name.

    Scheduling a name that is already pending replaces the old handle.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._handles: dict[TimerName, asyncio.TimerHandle] = {}

    def schedule(
        self,
        name: TimerName,
        delay: float,
        callback: Callable[..., Any],
        *args: Any,
    ) -> None:
        """Run ``callback(*args)`` after ``delay`` seconds."""
        self.cancel(name)
        self._handles[name] = self._loop.call_later(
            delay, self._fire, name, callback, args
        )

    def _fire(
        self, name: TimerName, callback: Callable[..., Any], args: tuple[Any, ...]
    ) -> None:
        self._handles.pop(name, None)
        callback(*args)

    def cancel(self, name: TimerName) -> None:
        """Cancel the named timer if pending."""
        handle = self._handles.pop(name, None)
        if handle is not None:
            handle.cancel()

    def cancel_all(self) -> None:
        """Cancel every pending timer."""
        for name in list(self._handles):
            self.cancel(name)

    def is_pending(self, name: TimerName) -> bool:
        return name in self._handles

    @property
    def pending(self) -> frozenset[TimerName]:
        """Names of the timers still scheduled."""
        return frozenset(self._handles)


class ConnectTimeoutSupervisor:
    """Watchdog aborting a connection attempt that never opens.

    The watchdog is scoped to one socket handle: when it fires it passes
    that handle to ``on_timeout`` so the owner can ignore a handle it has
    already abandoned.
    """

    def __init__(
        self,
        timers: Timers,
        timeout: float,
        on_timeout: Callable[[Any], None],
    ) -> None:
        self._timers = timers
        self._timeout = timeout
        self._on_timeout = on_timeout
        self._watched: Any = None

    @property
    def watched(self) -> Any:
        """Handle currently supervised, if any."""
        return self._watched

    def start(self, handle: Any) -> None:
        """Begin supervising a freshly created handle."""
        self._watched = handle
        self._timers.schedule(TimerName.CONNECT_TIMEOUT, self._timeout, self._expire, handle)

    def cancel(self) -> None:
        """Stop supervising; called on open or abandonment."""
        self._watched = None
        self._timers.cancel(TimerName.CONNECT_TIMEOUT)

    def _expire(self, handle: Any) -> None:
        if handle is not self._watched:
            return
        self._watched = None
        self._on_timeout(handle)

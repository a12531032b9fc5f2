"""Self-healing socket connection.

``RobustSocket`` presents one long-lived logical connection on top of an
unreliable socket handle. It handles:
- Creating a handle per connection attempt and dropping stale ones
- Aborting attempts that never finish their handshake
- Exponential backoff between attempts, reset after a stable period
- Buffering outgoing messages while no socket is usable
- Dispatching ``open``/``message``/``error``/``close`` plus the synthetic
  ``down`` and ``reopen`` lifecycle events

Every handler runs on the event loop thread and runs to completion, so
engine state needs no locking.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from enum import Enum, IntEnum
from functools import partial
from typing import Any

from .backoff import BackoffScheduler
from .buffer import MessageBuffer
from .errors import RobustSocketClosedError, RobustSocketConfigError, RobustSocketError
from .events import CloseEvent, ErrorEvent, Event, EventTarget, EventType, MessageEvent
from .options import RobustSocketOptions, SocketFactory
from .policy import resolve_policy
from .timers import ConnectTimeoutSupervisor, TimerName, Timers
from .transport.base import ABNORMAL_CLOSURE, SocketHandle
from .transport.ws import WebsocketsSocket

_LOGGER = logging.getLogger(__name__)

CLIENT_RECONNECT_REASON = "Client requested reconnect."
CONNECT_TIMEOUT_REASON = "Connection attempt timed out"


class ReadyState(IntEnum):
    """Standard WebSocket ready states."""

    CONNECTING = 0
    OPEN = 1
    CLOSING = 2
    CLOSED = 3


class LifecycleState(Enum):
    """Internal connection lifecycle."""

    INITIAL = "initial"
    CONNECTING = "connecting"
    OPEN = "open"
    DOWN = "down"
    CLOSED = "closed"


class RobustSocket(EventTarget):
    """WebSocket-like connection that reconnects on its own.

    Usage:
        sock = RobustSocket("ws://example.com/feed", max_reconnect_attempts=10)
        sock.on_open = lambda event: sock.send("subscribe")
        sock.on_reopen = lambda event: sock.send("subscribe")
        sock.on_message = handle_message
        ...
        sock.close()

    Must be created while an event loop is running (or with ``loop=``).
    Keyword arguments other than ``options`` and ``loop`` override fields of
    ``RobustSocketOptions``.
    """

    CONNECTING = ReadyState.CONNECTING
    OPEN = ReadyState.OPEN
    CLOSING = ReadyState.CLOSING
    CLOSED = ReadyState.CLOSED

    def __init__(
        self,
        url: str,
        protocols: str | list[str] | None = None,
        *,
        options: RobustSocketOptions | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        **overrides: Any,
    ) -> None:
        """Validate configuration and start the first connection attempt.

        Raises:
            RobustSocketConfigError: Invalid options, or no event loop.
        """
        super().__init__()
        try:
            options = replace(options or RobustSocketOptions(), **overrides)
        except TypeError as err:
            raise RobustSocketConfigError(f"Invalid option: {err}") from err

        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as err:
                raise RobustSocketConfigError(
                    "RobustSocket needs a running event loop or an explicit loop"
                ) from err

        self._url = url
        self._protocols = protocols
        self._options = options
        self._loop = loop
        self._socket_factory: SocketFactory = options.socket_factory or WebsocketsSocket
        self._log_level = logging.INFO if options.debug else logging.DEBUG

        # Connection state
        self._socket: SocketHandle | None = None
        self._socket_open = False
        self._is_closed = False
        self._has_opened = False
        self._is_down = False
        self._generation = 0
        self._state = LifecycleState.INITIAL
        self._pending_decision: asyncio.Future[bool] | None = None

        # Last known negotiated values, kept while disconnected
        self._protocol = ""
        self._extensions = ""
        self._binary_type = "bytes"

        self._buffer = MessageBuffer()
        self._backoff = BackoffScheduler(
            min_delay=options.min_reconnect_delay,
            max_delay=options.max_reconnect_delay,
            factor=options.reconnect_backoff_factor,
            max_attempts=options.max_reconnect_attempts,
        )
        self._timers = Timers(loop)
        self._connect_supervisor = ConnectTimeoutSupervisor(
            self._timers, options.connect_timeout, self._handle_connect_timeout
        )

        self._open_new_socket()

    # -------------------------------------------------------------------------
    # Public API: Readouts
    # -------------------------------------------------------------------------

    @property
    def url(self) -> str:
        return self._url

    @property
    def protocols(self) -> str | list[str] | None:
        """Sub-protocol selector offered on every attempt."""
        return self._protocols

    @property
    def options(self) -> RobustSocketOptions:
        return self._options

    @property
    def ready_state(self) -> ReadyState:
        """OPEN until permanently closed.

        Buffering hides transient downtime, so a socket that is between
        attempts still reports OPEN.
        """
        return ReadyState.CLOSED if self._is_closed else ReadyState.OPEN

    @property
    def lifecycle_state(self) -> LifecycleState:
        return self._state

    @property
    def is_closed(self) -> bool:
        return self._is_closed

    @property
    def protocol(self) -> str:
        """Negotiated sub-protocol of the live socket, else the last known."""
        if self._socket is not None and self._socket_open:
            return self._socket.protocol
        return self._protocol

    @property
    def extensions(self) -> str:
        """Negotiated extensions of the live socket, else the last known."""
        if self._socket is not None and self._socket_open:
            return self._socket.extensions
        return self._extensions

    @property
    def binary_type(self) -> str:
        return self._binary_type

    @binary_type.setter
    def binary_type(self, binary_type: str) -> None:
        self._binary_type = binary_type
        if self._socket is not None:
            self._socket.binary_type = binary_type

    @property
    def buffered_amount(self) -> int:
        """Bytes waiting in the reconnect buffer and in the live socket."""
        amount = self._buffer.buffered_amount
        if self._socket is not None:
            amount += self._socket.buffered_amount
        return amount

    @property
    def reconnect_count(self) -> int:
        """Attempts scheduled since the last all-clear reset."""
        return self._backoff.reconnect_count

    @property
    def next_retry_time(self) -> float:
        """Delay the next scheduled attempt will wait (seconds)."""
        return self._backoff.next_retry_time

    # -------------------------------------------------------------------------
    # Public API: Mutators
    # -------------------------------------------------------------------------

    def send(self, data: Any) -> None:
        """Send ``data`` now, or buffer it until a socket is usable.

        Raises:
            RobustSocketClosedError: If the socket is permanently closed.
        """
        if self._is_closed:
            raise RobustSocketClosedError("Cannot send on a permanently closed socket")

        # Anything still buffered goes first, so queue behind it and drain.
        self._buffer.append(data)
        if self._socket is not None and self._socket_open:
            self._flush_buffer(self._socket)

    def close(self, code: int = 1000, reason: str = "") -> None:
        """Close permanently. No further attempts or events follow."""
        if self._is_closed:
            return

        _LOGGER.log(self._log_level, "[%s] Closing (code=%d)", self._url, code)
        self._is_closed = True
        self._clear_timers()
        self._cancel_pending_decision()
        self._buffer.clear()
        socket = self._release_socket()
        self._set_state(LifecycleState.CLOSED)
        if socket is not None:
            socket.close(code, reason)

    def reconnect(self) -> None:
        """Drop the current socket and go through the reconnect path.

        Raises:
            RobustSocketClosedError: If the socket is permanently closed.
        """
        if self._is_closed:
            raise RobustSocketClosedError(
                "Cannot call reconnect() on a permanently closed socket"
            )

        _LOGGER.log(self._log_level, "[%s] Reconnect requested", self._url)
        socket = self._release_socket()
        if socket is not None:
            socket.close(1000, CLIENT_RECONNECT_REASON)
        self._connection_lost(
            CloseEvent(code=1000, reason=CLIENT_RECONNECT_REASON, was_clean=True)
        )

    # -------------------------------------------------------------------------
    # Internal: Connection State Machine
    # -------------------------------------------------------------------------

    def _set_state(self, state: LifecycleState) -> None:
        if self._state != state:
            _LOGGER.log(
                self._log_level,
                "[%s] State: %s → %s",
                self._url,
                self._state.value,
                state.value,
            )
            self._state = state

    def _open_new_socket(self) -> None:
        if self._is_closed:
            return

        self._generation += 1
        self._set_state(LifecycleState.CONNECTING)
        _LOGGER.log(
            self._log_level,
            "[%s] Connecting (attempt #%d)",
            self._url,
            self._backoff.reconnect_count + 1,
        )

        try:
            socket = self._socket_factory(self._url, self._protocols)
        except (RobustSocketError, OSError, ValueError) as err:
            _LOGGER.warning("[%s] Could not create socket: %s", self._url, err)
            self.dispatch_event(ErrorEvent(error=err))
            self._connection_lost(CloseEvent(code=ABNORMAL_CLOSURE, was_clean=False))
            return

        self._socket = socket
        self._socket_open = False
        socket.binary_type = self._binary_type
        socket.on_open = partial(self._handle_open, socket)
        socket.on_message = partial(self._handle_message, socket)
        socket.on_error = partial(self._handle_error, socket)
        socket.on_close = partial(self._handle_close, socket)
        self._connect_supervisor.start(socket)

    def _release_socket(self) -> SocketHandle | None:
        """Detach the current socket so its callbacks become no-ops."""
        socket = self._socket
        if socket is None:
            return None
        self._socket = None
        self._socket_open = False
        self._protocol = socket.protocol
        self._extensions = socket.extensions
        return socket

    def _flush_buffer(self, socket: SocketHandle) -> int:
        """Send buffered messages in order; a failure keeps the rest queued.

        Returns:
            Number of messages handed to the socket.
        """
        sent = 0
        try:
            sent = self._buffer.flush(socket.send)
        except RobustSocketError as err:
            _LOGGER.debug(
                "[%s] Send failed, %d messages stay buffered: %s",
                self._url,
                len(self._buffer),
                err,
            )
        return sent

    def _clear_timers(self) -> None:
        self._connect_supervisor.cancel()
        self._timers.cancel_all()

    def _cancel_pending_decision(self) -> None:
        if self._pending_decision is not None:
            self._pending_decision.cancel()
            self._pending_decision = None

    def _connection_lost(self, event: CloseEvent) -> None:
        self._clear_timers()
        self._release_socket()
        if self._is_closed:
            return

        _LOGGER.log(
            self._log_level,
            "[%s] Connection lost (code=%d, reason=%r)",
            self._url,
            event.code,
            event.reason,
        )
        self._set_state(LifecycleState.DOWN)
        if not self._is_down:
            self._is_down = True
            self.dispatch_event(
                CloseEvent(
                    type=EventType.DOWN,
                    code=event.code,
                    reason=event.reason,
                    was_clean=event.was_clean,
                )
            )
            # A down listener may have closed us.
            if self._is_closed:
                return

        if self._backoff.exhausted:
            self._stop_reconnecting(event, "maximum reconnect attempts reached")
            return

        self._cancel_pending_decision()
        self._generation += 1
        decision = resolve_policy(self._options.should_reconnect, event, self._loop)
        self._pending_decision = decision
        decision.add_done_callback(
            partial(self._handle_reconnect_decision, self._generation, event)
        )

    def _handle_reconnect_decision(
        self, generation: int, event: CloseEvent, decision: asyncio.Future[bool]
    ) -> None:
        if decision.cancelled() or generation != self._generation or self._is_closed:
            return
        self._pending_decision = None

        try:
            should_reconnect = bool(decision.result())
        except Exception:
            _LOGGER.exception("[%s] Reconnect policy failed", self._url)
            should_reconnect = False

        if not should_reconnect:
            self._stop_reconnecting(event, "reconnect policy declined")
            return

        delay = self._backoff.next_delay()
        _LOGGER.log(
            self._log_level,
            "[%s] Reconnecting in %.3fs (attempt %d)",
            self._url,
            delay,
            self._backoff.reconnect_count,
        )
        self._timers.schedule(TimerName.RECONNECT, delay, self._open_new_socket)

    def _stop_reconnecting(self, event: CloseEvent, why: str) -> None:
        _LOGGER.info("[%s] Giving up: %s", self._url, why)
        self._is_closed = True
        self._clear_timers()
        self._buffer.clear()
        self._set_state(LifecycleState.CLOSED)
        self.dispatch_event(event)

    def _handle_all_clear(self) -> None:
        _LOGGER.log(
            self._log_level, "[%s] Connection stable, resetting backoff", self._url
        )
        self._backoff.reset()

    # -------------------------------------------------------------------------
    # Internal: Socket Callbacks
    # -------------------------------------------------------------------------

    def _handle_open(self, socket: SocketHandle, event: Event) -> None:
        if socket is not self._socket:
            return

        self._connect_supervisor.cancel()
        self._socket_open = True
        self._protocol = socket.protocol
        self._extensions = socket.extensions
        self._binary_type = socket.binary_type
        self._set_state(LifecycleState.OPEN)

        is_reopen = self._has_opened
        self._has_opened = True
        self._is_down = False

        sent = self._flush_buffer(socket)
        if sent:
            _LOGGER.log(
                self._log_level, "[%s] Flushed %d buffered messages", self._url, sent
            )

        self._timers.schedule(
            TimerName.ALL_CLEAR,
            self._options.all_clear_reset_time,
            self._handle_all_clear,
        )
        self.dispatch_event(Event(EventType.REOPEN if is_reopen else EventType.OPEN))

    def _handle_message(self, socket: SocketHandle, event: MessageEvent) -> None:
        if socket is not self._socket:
            return
        self.dispatch_event(event)

    def _handle_error(self, socket: SocketHandle, event: ErrorEvent) -> None:
        if socket is not self._socket:
            return
        _LOGGER.log(self._log_level, "[%s] Socket error: %s", self._url, event.error)
        self.dispatch_event(event)

    def _handle_close(self, socket: SocketHandle, event: CloseEvent) -> None:
        if socket is not self._socket:
            return
        self._connection_lost(event)

    def _handle_connect_timeout(self, socket: SocketHandle) -> None:
        if socket is not self._socket:
            return

        _LOGGER.warning(
            "[%s] Connection attempt timed out after %.3fs",
            self._url,
            self._options.connect_timeout,
        )
        self._release_socket()
        socket.close()
        self._connection_lost(
            CloseEvent(
                code=ABNORMAL_CLOSURE, reason=CONNECT_TIMEOUT_REASON, was_clean=False
            )
        )

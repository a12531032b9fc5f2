"""Socket handle contract and a shared asyncio implementation base."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Protocol

from ..buffer import byte_length
from ..errors import RobustSocketConnectionError, RobustSocketError
from ..events import CloseEvent, ErrorEvent, Event, EventType, MessageEvent

_LOGGER = logging.getLogger(__name__)

ABNORMAL_CLOSURE = 1006

Callback = Callable[[Event], Any]


class SocketHandle(Protocol):
    """What a robust socket needs from the transport it supervises.

    A handle starts connecting as soon as it is created and reports
    progress only through its four callback slots.
    """

    on_open: Callback | None
    on_message: Callback | None
    on_error: Callback | None
    on_close: Callback | None
    protocol: str
    extensions: str
    binary_type: str

    @property
    def buffered_amount(self) -> int: ...

    def send(self, data: Any) -> None: ...

    def close(self, code: int = 1000, reason: str = "") -> None: ...


def normalize_protocols(protocols: str | list[str] | None) -> list[str]:
    """Turn a sub-protocol selector into an ordered list."""
    if protocols is None:
        return []
    if isinstance(protocols, str):
        return [protocols]
    return list(protocols)


class TaskSocket(ABC):
    """Socket handle driven by an asyncio task.

    The task connects, fires ``on_open``, then forwards inbound frames until
    the transport ends, and finally fires ``on_close`` exactly once. Sends
    go through a writer queue so they reach the wire in call order;
    ``buffered_amount`` counts bytes queued but not yet written.

    Subclasses implement the transport-specific coroutines.
    """

    def __init__(self, url: str, protocols: str | list[str] | None = None) -> None:
        self.url = url
        self.protocols = normalize_protocols(protocols)

        self.on_open: Callback | None = None
        self.on_message: Callback | None = None
        self.on_error: Callback | None = None
        self.on_close: Callback | None = None

        self.protocol = ""
        self.extensions = ""
        self.binary_type = "bytes"

        self._is_open = False
        self._close_fired = False
        self._close_requested: tuple[int, str] | None = None
        self._buffered = 0
        self._outbox: asyncio.Queue[Any] = asyncio.Queue()

        loop = asyncio.get_running_loop()
        self._writer_task: asyncio.Task[None] | None = None
        self._close_task: asyncio.Task[None] | None = None
        self._task = loop.create_task(self._run())

    # -------------------------------------------------------------------------
    # Transport hooks
    # -------------------------------------------------------------------------

    @abstractmethod
    async def _connect(self) -> None:
        """Open the transport, setting ``protocol`` and ``extensions``."""

    @abstractmethod
    async def _receive(self) -> None:
        """Forward inbound frames until the transport ends."""

    @abstractmethod
    async def _transmit(self, data: Any) -> None:
        """Write one payload to the transport."""

    @abstractmethod
    async def _close_transport(self, code: int, reason: str) -> None:
        """Start the closing handshake."""

    @abstractmethod
    def _close_event(self) -> CloseEvent:
        """Close details once the transport has ended."""

    # -------------------------------------------------------------------------
    # Handle API
    # -------------------------------------------------------------------------

    @property
    def buffered_amount(self) -> int:
        return self._buffered

    def send(self, data: Any) -> None:
        """Queue ``data`` for transmission."""
        if not self._is_open or self._close_requested is not None:
            raise RobustSocketConnectionError("WebSocket is not connected")
        self._buffered += byte_length(data) or 0
        self._outbox.put_nowait(data)

    def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the transport, aborting the handshake if still connecting."""
        if self._close_fired or self._close_requested is not None:
            return
        self._close_requested = (code, reason)
        if not self._is_open:
            self._task.cancel()
            return
        self._close_task = asyncio.get_running_loop().create_task(
            self._close_transport(code, reason)
        )
        self._close_task.add_done_callback(self._close_task_done)

    def _close_task_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        err = task.exception()
        if err is not None:
            _LOGGER.warning("Closing handshake with %s failed: %s", self.url, err)

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    async def _run(self) -> None:
        try:
            await self._connect()
        except asyncio.CancelledError:
            self._fire_close(CloseEvent(code=ABNORMAL_CLOSURE, was_clean=False))
            raise
        except RobustSocketError as err:
            _LOGGER.debug("Connection to %s failed: %s", self.url, err)
            self._fire_error(err)
            self._fire_close(CloseEvent(code=ABNORMAL_CLOSURE, was_clean=False))
            return
        except Exception as err:
            _LOGGER.exception("Unexpected error connecting to %s", self.url)
            self._fire_error(err)
            self._fire_close(CloseEvent(code=ABNORMAL_CLOSURE, was_clean=False))
            return

        if self._close_requested is not None:
            try:
                await self._close_transport(*self._close_requested)
            finally:
                self._fire_close(self._close_event())
            return

        self._is_open = True
        self._fire(self.on_open, Event(EventType.OPEN))
        self._writer_task = asyncio.get_running_loop().create_task(self._write_loop())
        try:
            await self._receive()
        except RobustSocketError as err:
            self._fire_error(err)
        except Exception as err:
            _LOGGER.exception("Unexpected error receiving from %s", self.url)
            self._fire_error(err)
        finally:
            self._is_open = False
            self._writer_task.cancel()
            self._fire_close(self._close_event())

    async def _write_loop(self) -> None:
        while True:
            data = await self._outbox.get()
            try:
                await self._transmit(data)
            except RobustSocketError as err:
                _LOGGER.debug("Send to %s failed: %s", self.url, err)
                self._fire_error(err)
                return
            except Exception as err:
                _LOGGER.exception("Unexpected error sending to %s", self.url)
                self._fire_error(err)
                return
            finally:
                self._buffered -= byte_length(data) or 0

    def _convert_binary(self, data: Any) -> Any:
        if self.binary_type == "bytearray" and isinstance(data, bytes):
            return bytearray(data)
        return data

    def _fire(self, callback: Callback | None, event: Event) -> None:
        if callback is not None:
            callback(event)

    def _fire_message(self, data: Any) -> None:
        self._fire(self.on_message, MessageEvent(data=self._convert_binary(data)))

    def _fire_error(self, err: BaseException) -> None:
        self._fire(self.on_error, ErrorEvent(error=err))

    def _fire_close(self, event: CloseEvent) -> None:
        if self._close_fired:
            return
        self._close_fired = True
        self._fire(self.on_close, event)

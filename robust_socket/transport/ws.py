"""Default socket handle built on the websockets library."""

from __future__ import annotations

import logging
from typing import Any

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    ConnectionClosed,
    InvalidHandshake,
    InvalidURI,
    WebSocketException,
)

from ..errors import (
    RobustSocketConnectionError,
    RobustSocketHandshakeError,
    RobustSocketTimeout,
)
from ..events import CloseEvent
from .base import ABNORMAL_CLOSURE, TaskSocket

_LOGGER = logging.getLogger(__name__)


class WebsocketsSocket(TaskSocket):
    """Socket handle wrapping a websockets ``ClientConnection``.

    Library failures are reported as ``error`` events carrying the matching
    ``RobustSocketError``. The close code and reason received from the peer
    become the ``CloseEvent``; a connection that ended without a close frame
    reports 1006. Sends go through the writer queue of ``TaskSocket``.

    Args:
        url: WebSocket URL
        protocols: Sub-protocols offered during the handshake
        ping_interval: Interval for ping frames (None disables keepalive)
        open_timeout: Handshake timeout enforced by websockets itself
        close_timeout: Time allowed for the closing handshake
    """

    def __init__(
        self,
        url: str,
        protocols: str | list[str] | None = None,
        *,
        ping_interval: float | None = 20,
        open_timeout: float | None = 10.0,
        close_timeout: float = 5.0,
    ) -> None:
        self._ws: ClientConnection | None = None
        self._ping_interval = ping_interval
        self._open_timeout = open_timeout
        self._close_timeout = close_timeout
        super().__init__(url, protocols)

    async def _connect(self) -> None:
        try:
            self._ws = await websockets.connect(
                self.url,
                subprotocols=self.protocols or None,
                ping_interval=self._ping_interval,
                open_timeout=self._open_timeout,
                close_timeout=self._close_timeout,
                max_size=None,
            )
        except TimeoutError as err:
            raise RobustSocketTimeout("WebSocket connection timed out") from err
        except (InvalidHandshake, InvalidURI) as err:
            raise RobustSocketHandshakeError("WebSocket handshake failed") from err
        except (OSError, WebSocketException) as err:
            raise RobustSocketConnectionError("WebSocket connection failed") from err

        self.protocol = self._ws.subprotocol or ""
        self.extensions = ", ".join(
            extension.name for extension in self._ws.protocol.extensions
        )

    async def _receive(self) -> None:
        if self._ws is None:
            return
        try:
            async for message in self._ws:
                self._fire_message(message)
        except ConnectionClosed as err:
            _LOGGER.debug("WebSocket %s closed: %s", self.url, err)

    async def _transmit(self, data: Any) -> None:
        if self._ws is None:
            raise RobustSocketConnectionError("WebSocket is not connected")
        if isinstance(data, (bytearray, memoryview)):
            data = bytes(data)
        try:
            await self._ws.send(data)
        except ConnectionClosed as err:
            raise RobustSocketConnectionError("WebSocket is not connected") from err

    async def _close_transport(self, code: int, reason: str) -> None:
        if self._ws is not None:
            await self._ws.close(code, reason)

    def _close_event(self) -> CloseEvent:
        code = self._ws.close_code if self._ws is not None else None
        if code is None:
            return CloseEvent(code=ABNORMAL_CLOSURE, was_clean=False)
        return CloseEvent(
            code=code,
            reason=self._ws.close_reason or "",  # type: ignore[union-attr]
            was_clean=code != ABNORMAL_CLOSURE,
        )

"""Socket handle on top of an aiohttp client session."""

from __future__ import annotations

from typing import Any

import aiohttp
from aiohttp import WSMsgType

from ..errors import (
    RobustSocketConnectionError,
    RobustSocketHandshakeError,
    RobustSocketTimeout,
)
from ..events import CloseEvent, EventType
from .base import ABNORMAL_CLOSURE, TaskSocket


class AiohttpSocket(TaskSocket):
    """Socket handle wrapping ``aiohttp.ClientSession.ws_connect``.

    The session is owned by the caller, so use it as a factory through
    ``functools.partial(AiohttpSocket, session=session)``.
    """

    def __init__(
        self,
        url: str,
        protocols: str | list[str] | None = None,
        *,
        session: aiohttp.ClientSession,
        heartbeat: float | None = 30.0,
    ) -> None:
        self._session = session
        self._heartbeat = heartbeat
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        super().__init__(url, protocols)

    async def _connect(self) -> None:
        try:
            self._ws = await self._session.ws_connect(
                self.url,
                protocols=tuple(self.protocols),
                heartbeat=self._heartbeat,
            )
        except TimeoutError as err:
            raise RobustSocketTimeout("WebSocket connection timed out") from err
        except aiohttp.WSServerHandshakeError as err:
            raise RobustSocketHandshakeError("WebSocket handshake failed") from err
        except aiohttp.ClientError as err:
            raise RobustSocketConnectionError("WebSocket connection failed") from err

        self.protocol = self._ws.protocol or ""
        self.extensions = "permessage-deflate" if self._ws.compress else ""

    async def _receive(self) -> None:
        if self._ws is None:
            return
        async for msg in self._ws:
            event_type = self._map_message_type(msg.type)
            if event_type is EventType.MESSAGE:
                self._fire_message(msg.data)
            elif event_type is EventType.ERROR:
                self._fire_error(
                    RobustSocketConnectionError(f"WebSocket error: {self._ws.exception()}")
                )
            elif event_type is EventType.CLOSE:
                break

    @staticmethod
    def _map_message_type(msg_type: WSMsgType) -> EventType | None:
        """Map aiohttp frame types to the events they produce."""
        if msg_type in {WSMsgType.TEXT, WSMsgType.BINARY}:
            return EventType.MESSAGE

        if msg_type is WSMsgType.ERROR:
            return EventType.ERROR

        if msg_type in {WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED}:
            return EventType.CLOSE

        return None

    async def _transmit(self, data: Any) -> None:
        if self._ws is None or self._ws.closed:
            raise RobustSocketConnectionError("WebSocket is not connected")
        try:
            if isinstance(data, str):
                await self._ws.send_str(data)
            else:
                await self._ws.send_bytes(bytes(data))
        except (ConnectionResetError, aiohttp.ClientError) as err:
            raise RobustSocketConnectionError("WebSocket send failed") from err

    async def _close_transport(self, code: int, reason: str) -> None:
        if self._ws is not None:
            await self._ws.close(code=code, message=reason.encode("utf-8"))

    def _close_event(self) -> CloseEvent:
        code = self._ws.close_code if self._ws is not None else None
        if code is None:
            return CloseEvent(code=ABNORMAL_CLOSURE, was_clean=False)
        return CloseEvent(code=code, was_clean=code != ABNORMAL_CLOSURE)

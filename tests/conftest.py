"""Pytest configuration and fixtures for robust_socket tests."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import pytest

from robust_socket.events import CloseEvent, ErrorEvent, Event, EventType, MessageEvent


class FakeSocket:
    """Scripted socket handle; tests drive its callbacks by hand."""

    def __init__(self, url: str, protocols: str | list[str] | None = None) -> None:
        self.url = url
        self.protocols = protocols

        self.on_open: Callable[[Event], Any] | None = None
        self.on_message: Callable[[Event], Any] | None = None
        self.on_error: Callable[[Event], Any] | None = None
        self.on_close: Callable[[Event], Any] | None = None

        self.protocol = ""
        self.extensions = ""
        self.binary_type = "bytes"
        self.buffered_amount = 0

        self.sent: list[Any] = []
        self.closed_with: tuple[int, str] | None = None

    def send(self, data: Any) -> None:
        self.sent.append(data)

    def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed_with = (code, reason)

    def open(self, *, protocol: str = "", extensions: str = "") -> None:
        self.protocol = protocol
        self.extensions = extensions
        assert self.on_open is not None
        self.on_open(Event(EventType.OPEN))

    def receive(self, data: Any) -> None:
        assert self.on_message is not None
        self.on_message(MessageEvent(data=data))

    def fail(self, error: BaseException) -> None:
        assert self.on_error is not None
        self.on_error(ErrorEvent(error=error))

    def remote_close(self, code: int = 1000, reason: str = "") -> None:
        assert self.on_close is not None
        self.on_close(CloseEvent(code=code, reason=reason))


class FakeSocketFactory:
    """Socket factory recording every handle it creates.

    ``on_create`` runs on the next loop iteration, after the connection has
    bound its callbacks.
    """

    def __init__(self, on_create: Callable[[FakeSocket], None] | None = None) -> None:
        self.sockets: list[FakeSocket] = []
        self.on_create = on_create

    def __call__(self, url: str, protocols: str | list[str] | None = None) -> FakeSocket:
        socket = FakeSocket(url, protocols)
        self.sockets.append(socket)
        if self.on_create is not None:
            asyncio.get_running_loop().call_soon(self.on_create, socket)
        return socket

    @property
    def latest(self) -> FakeSocket:
        return self.sockets[-1]


@pytest.fixture
def factory() -> FakeSocketFactory:
    """Create a fake socket factory that never opens on its own."""
    return FakeSocketFactory()


@pytest.fixture
def make_factory() -> type[FakeSocketFactory]:
    """Give tests the factory class to script ``on_create`` behaviour."""
    return FakeSocketFactory


@pytest.fixture
def wait_until() -> Callable[..., Awaitable[None]]:
    """Poll a predicate on the running loop until it holds or time runs out."""

    async def _wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
        async with asyncio.timeout(timeout):
            while not predicate():
                await asyncio.sleep(0.001)

    return _wait_until

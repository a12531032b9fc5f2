"""Outbound message buffering while no live socket exists."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterator
from typing import Any


def byte_length(data: Any) -> int | None:
    """Return the size of an outbound payload in bytes, or None if unknown."""
    if isinstance(data, str):
        return len(data.encode("utf-8"))
    if isinstance(data, (bytes, bytearray)):
        return len(data)
    if isinstance(data, memoryview):
        return data.nbytes
    return None


class MessageBuffer:
    """FIFO of payloads sent before a socket became usable.

    Messages leave the buffer only once the send callable accepted them,
    so a failing send keeps the remaining messages in order.
    """

    def __init__(self) -> None:
        self._messages: deque[Any] = deque()

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Any]:
        return iter(tuple(self._messages))

    def append(self, data: Any) -> None:
        """Queue a payload behind everything already buffered."""
        self._messages.append(data)

    def flush(self, send: Callable[[Any], None]) -> int:
        """Send every buffered payload in order and empty the buffer.

        Returns:
            Number of payloads handed to ``send``.
        """
        sent = 0
        while self._messages:
            send(self._messages[0])
            self._messages.popleft()
            sent += 1
        return sent

    def clear(self) -> None:
        """Drop all buffered payloads."""
        self._messages.clear()

    @property
    def buffered_amount(self) -> int:
        """Total byte length of payloads whose size is known."""
        total = 0
        for message in self._messages:
            size = byte_length(message)
            if size is not None:
                total += size
        return total

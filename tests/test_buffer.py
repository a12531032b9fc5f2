"""Tests for message buffering and byte length estimation."""

import pytest

from robust_socket.buffer import MessageBuffer, byte_length
from robust_socket.errors import RobustSocketConnectionError


class TestByteLength:
    """Tests for byte_length()."""

    def test_ascii_string(self):
        assert byte_length("hello") == 5

    def test_multibyte_string(self):
        """Test strings are measured in UTF-8 bytes."""
        assert byte_length("héllo") == 6

    def test_bytes_like(self):
        assert byte_length(b"\x00\x01") == 2
        assert byte_length(bytearray(3)) == 3
        assert byte_length(memoryview(b"abcd")) == 4

    def test_unknown_type(self):
        """Test payloads of unknown size return None."""
        assert byte_length({"type": "ping"}) is None
        assert byte_length(42) is None


class TestMessageBuffer:
    """Tests for MessageBuffer."""

    def test_flush_preserves_order(self):
        """Test payloads are flushed in insertion order, then cleared."""
        buffer = MessageBuffer()
        for message in ["first", "second", "third"]:
            buffer.append(message)

        sent: list = []
        count = buffer.flush(sent.append)

        assert count == 3
        assert sent == ["first", "second", "third"]
        assert len(buffer) == 0

    def test_flush_empty(self):
        buffer = MessageBuffer()
        assert buffer.flush(lambda data: None) == 0

    def test_failed_send_keeps_remaining_messages(self):
        """Test a failing send leaves the unsent payloads queued in order."""
        buffer = MessageBuffer()
        for message in ["a", "b", "c"]:
            buffer.append(message)
        sent: list = []

        def send(data):
            if data == "b":
                raise RobustSocketConnectionError("WebSocket is not connected")
            sent.append(data)

        with pytest.raises(RobustSocketConnectionError):
            buffer.flush(send)

        assert sent == ["a"]
        assert list(buffer) == ["b", "c"]

    def test_buffered_amount_ignores_unknown_sizes(self):
        """Test only payloads with a known size count."""
        buffer = MessageBuffer()
        buffer.append("héllo")
        buffer.append(b"xy")
        buffer.append(object())

        assert buffer.buffered_amount == 8

    def test_clear(self):
        buffer = MessageBuffer()
        buffer.append("x")
        buffer.clear()
        assert len(buffer) == 0
        assert buffer.buffered_amount == 0

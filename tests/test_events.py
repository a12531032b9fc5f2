"""Tests for event dispatch."""

import asyncio
from unittest.mock import MagicMock

import pytest

from robust_socket.events import (
    CloseEvent,
    ErrorEvent,
    Event,
    EventTarget,
    EventType,
    MessageEvent,
)


class TestEvents:
    """Tests for event dataclasses."""

    def test_event_types(self):
        """Test the synthetic lifecycle types exist next to the standard ones."""
        assert {t.value for t in EventType} == {
            "open",
            "message",
            "error",
            "close",
            "down",
            "reopen",
        }

    def test_close_event_defaults(self):
        event = CloseEvent()
        assert event.type is EventType.CLOSE
        assert event.code == 1005
        assert event.reason == ""
        assert event.was_clean

    def test_prevent_default(self):
        event = MessageEvent(data="x")
        assert not event.default_prevented
        event.prevent_default()
        assert event.default_prevented


class TestEventTarget:
    """Tests for EventTarget dispatch."""

    def test_slot_runs_before_listeners(self):
        """Test the on_<type> slot is called first, then listeners in order."""
        target = EventTarget()
        calls: list[str] = []
        target.on_message = lambda event: calls.append("slot")
        target.add_event_listener("message", lambda event: calls.append("first"))
        target.add_event_listener(EventType.MESSAGE, lambda event: calls.append("second"))

        assert target.dispatch_event(MessageEvent(data="hi")) is True
        assert calls == ["slot", "first", "second"]

    def test_event_target_is_set(self):
        target = EventTarget()
        listener = MagicMock()
        target.add_event_listener("open", listener)

        target.dispatch_event(Event(EventType.OPEN))

        assert listener.call_args.args[0].target is target

    def test_duplicate_listeners_not_deduplicated(self):
        target = EventTarget()
        listener = MagicMock()
        target.add_event_listener("down", listener)
        target.add_event_listener("down", listener)

        target.dispatch_event(Event(EventType.DOWN))

        assert listener.call_count == 2

    def test_remove_listener_removes_every_registration(self):
        target = EventTarget()
        listener = MagicMock()
        target.add_event_listener("close", listener)
        target.add_event_listener("close", listener)

        target.remove_event_listener("close", listener)
        target.dispatch_event(CloseEvent())

        listener.assert_not_called()
        assert target.listeners("close") == ()

    def test_removal_during_dispatch_uses_snapshot(self):
        """Test removing a listener mid-dispatch does not skip it this round."""
        target = EventTarget()
        second = MagicMock()

        def first(event):
            target.remove_event_listener("reopen", second)

        target.add_event_listener("reopen", first)
        target.add_event_listener("reopen", second)

        target.dispatch_event(Event(EventType.REOPEN))
        target.dispatch_event(Event(EventType.REOPEN))

        second.assert_called_once()

    def test_prevent_default_reported_to_caller(self):
        target = EventTarget()
        target.add_event_listener("message", lambda event: event.prevent_default())

        assert target.dispatch_event(MessageEvent(data="x")) is False

    def test_failing_listener_does_not_stop_fan_out(self):
        """Test later listeners still run and the failure reaches on_error."""
        target = EventTarget()
        later = MagicMock()
        on_error = MagicMock()
        target.on_error = on_error

        def broken(event):
            raise RuntimeError("boom")

        target.add_event_listener("message", broken)
        target.add_event_listener("message", later)

        target.dispatch_event(MessageEvent(data="x"))

        later.assert_called_once()
        error_event = on_error.call_args.args[0]
        assert isinstance(error_event, ErrorEvent)
        assert str(error_event.error) == "boom"

    def test_failing_error_listener_is_only_logged(self, caplog):
        """Test an error listener raising does not recurse."""
        target = EventTarget()
        calls = MagicMock(side_effect=RuntimeError("again"))
        target.on_error = calls

        target.dispatch_event(ErrorEvent(error=ValueError("x")))

        calls.assert_called_once()
        assert "Listener for error event failed" in caplog.text

    def test_unknown_event_type_rejected(self):
        target = EventTarget()
        with pytest.raises(ValueError):
            target.add_event_listener("bogus", MagicMock())

    @pytest.mark.asyncio
    async def test_async_listener_is_scheduled(self):
        """Test coroutine listeners run as tasks on the loop."""
        target = EventTarget()
        received: list = []

        async def listener(event):
            await asyncio.sleep(0)
            received.append(event.data)

        target.add_event_listener("message", listener)
        target.dispatch_event(MessageEvent(data="async"))
        await asyncio.sleep(0.01)

        assert received == ["async"]

"""Unit tests for the event emitter."""

import logging
from unittest.mock import MagicMock

from cellulard.events import EventEmitter


class TestEventEmitter:
    """Tests for EventEmitter class."""

    def test_emit_calls_listeners(self):
        emitter = EventEmitter()
        first = MagicMock()
        second = MagicMock()
        emitter.on("modem_added", first)
        emitter.on("modem_added", second)

        emitter.emit("modem_added", "/ril_0")

        first.assert_called_once_with("/ril_0")
        second.assert_called_once_with("/ril_0")

    def test_emit_without_listeners(self):
        """Test emitting an event nobody listens to is harmless."""
        EventEmitter().emit("valid_changed")

    def test_unsubscribe(self):
        emitter = EventEmitter()
        callback = MagicMock()
        unsubscribe = emitter.on("valid_changed", callback)

        unsubscribe()
        unsubscribe()
        emitter.emit("valid_changed")

        callback.assert_not_called()

    def test_unsubscribe_during_emit(self):
        """Test a listener may unsubscribe itself while being called."""
        emitter = EventEmitter()
        calls = []

        def once(*args):
            calls.append(args)
            unsubscribe()

        unsubscribe = emitter.on("ready_changed", once)
        other = MagicMock()
        emitter.on("ready_changed", other)

        emitter.emit("ready_changed", 1)
        emitter.emit("ready_changed", 2)

        assert calls == [(1,)]
        assert other.call_count == 2

    def test_failing_listener_is_logged(self, caplog):
        """Test one failing listener does not stop the others."""
        emitter = EventEmitter()
        emitter.on("mode_changed", MagicMock(side_effect=RuntimeError("boom")))
        other = MagicMock()
        emitter.on("mode_changed", other)

        with caplog.at_level(logging.ERROR, logger="cellulard"):
            emitter.emit("mode_changed", "flight")

        other.assert_called_once_with("flight")
        assert "Error in event listener for 'mode_changed'" in caplog.text

    def test_clear(self):
        emitter = EventEmitter()
        first = MagicMock()
        second = MagicMock()
        emitter.on("a", first)
        emitter.on("b", second)

        emitter.clear()
        emitter.emit("a")
        emitter.emit("b")

        first.assert_not_called()
        second.assert_not_called()

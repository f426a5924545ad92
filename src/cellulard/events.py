"""Simple event emitter for service notifications.

Service adapters use an EventEmitter to fan notifications out to the
callbacks registered through the ``on_*`` methods of
:mod:`cellulard.interface`. Callbacks run synchronously on the event loop.

Example:
    >>> emitter = EventEmitter()
    >>> unsubscribe = emitter.on("modem_added", lambda modem: print(modem.path))
    >>> emitter.emit("modem_added", modem)
    >>> unsubscribe()
"""

import logging
from typing import Any, Callable

log = logging.getLogger(__name__)

# Event names
EVENT_MODE_CHANGED = "mode_changed"
EVENT_VALID_CHANGED = "valid_changed"
EVENT_MODEM_ADDED = "modem_added"
EVENT_MODEM_REMOVED = "modem_removed"
EVENT_READY_CHANGED = "ready_changed"

Listener = Callable[..., None]


class EventEmitter:
    """Synchronous event emitter."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def on(self, event: str, callback: Listener) -> Callable[[], None]:
        """Register a callback for an event.

        Args:
            event: Event name.
            callback: Callback function.

        Returns:
            Unsubscribe function removing the callback. Calling it more
            than once is harmless.
        """
        if event not in self._listeners:
            self._listeners[event] = []
        self._listeners[event].append(callback)

        def unsubscribe() -> None:
            self.off(event, callback)

        return unsubscribe

    def off(self, event: str, callback: Listener) -> None:
        """Remove a callback for an event.

        Args:
            event: Event name.
            callback: Callback to remove.
        """
        if event in self._listeners and callback in self._listeners[event]:
            self._listeners[event].remove(callback)

    def emit(self, event: str, *args: Any) -> None:
        """Emit an event to all listeners.

        A failing listener is logged and does not prevent the others from
        running.

        Args:
            event: Event name.
            *args: Arguments passed to each listener.
        """
        for callback in list(self._listeners.get(event, [])):
            try:
                callback(*args)
            except Exception:
                log.exception("Error in event listener for '%s'", event)

    def clear(self) -> None:
        """Remove all listeners."""
        self._listeners.clear()

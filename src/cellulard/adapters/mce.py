"""MCE mode service adapter.

Implements :class:`~cellulard.interface.ModeService` on top of the MCE
D-Bus API: ``get_device_mode`` for the initial query and the
``sig_device_mode_ind`` broadcast for changes.
"""

import logging
from typing import Callable, Optional

from dbus_next import Message
from dbus_next.aio import MessageBus

from cellulard.adapters.bus import add_match, call_method, is_signal, match_rule, remove_match
from cellulard.constants import (
    MCE_DEVICE_MODE_GET,
    MCE_DEVICE_MODE_SIG,
    MCE_REQUEST_IF,
    MCE_REQUEST_PATH,
    MCE_SERVICE,
    MCE_SIGNAL_IF,
    MCE_SIGNAL_PATH,
)
from cellulard.events import EVENT_MODE_CHANGED, EventEmitter
from cellulard.exceptions import ModeQueryError
from cellulard.interface import ModeService, Unsubscribe

log = logging.getLogger(__name__)


class MceModeService(ModeService):
    """Mode service backed by MCE on the system bus.

    Example:
        >>> mce = MceModeService(bus)
        >>> await mce.start()
        >>> mode = await mce.get_mode()
        >>> await mce.close()
    """

    def __init__(self, bus: MessageBus) -> None:
        """Initialize the adapter.

        Args:
            bus: Connected system bus.
        """
        self._bus = bus
        self._events = EventEmitter()
        self._rule = match_rule(
            type="signal",
            interface=MCE_SIGNAL_IF,
            member=MCE_DEVICE_MODE_SIG,
            path=MCE_SIGNAL_PATH,
        )
        self._started = False

    async def start(self) -> None:
        """Start listening for mode broadcasts."""
        if self._started:
            return
        self._bus.add_message_handler(self._handle_message)
        await add_match(self._bus, self._rule)
        self._started = True

    async def close(self) -> None:
        """Stop listening for mode broadcasts."""
        if not self._started:
            return
        self._started = False
        self._bus.remove_message_handler(self._handle_message)
        await remove_match(self._bus, self._rule)
        self._events.clear()

    async def get_mode(self) -> str:
        """Query the current device mode from MCE.

        Raises:
            ModeQueryError: If the call fails or returns something unexpected.
        """
        try:
            body = await call_method(
                self._bus,
                MCE_SERVICE,
                MCE_REQUEST_PATH,
                MCE_REQUEST_IF,
                MCE_DEVICE_MODE_GET,
            )
        except Exception as e:
            raise ModeQueryError(f"{MCE_DEVICE_MODE_GET}() failed: {e}") from e

        return self._parse_mode(body)

    def on_mode_changed(self, callback: Callable[[str], None]) -> Unsubscribe:
        return self._events.on(EVENT_MODE_CHANGED, callback)

    def _handle_message(self, message: Message) -> None:
        if not is_signal(message, MCE_SIGNAL_IF, MCE_DEVICE_MODE_SIG):
            return None

        try:
            mode = self._parse_mode(message.body)
        except ModeQueryError as e:
            log.warning("Ignoring malformed %s: %s", MCE_DEVICE_MODE_SIG, e)
            return None

        self._events.emit(EVENT_MODE_CHANGED, mode)
        return None

    @staticmethod
    def _parse_mode(body: Optional[list]) -> str:
        if not body or not isinstance(body[0], str):
            raise ModeQueryError(f"Unexpected device mode payload: {body!r}")
        return body[0]

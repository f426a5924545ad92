"""Abstract service interfaces for cellulard.

The core only talks to the mode service and the modem management service
through these interfaces. The D-Bus adapters in :mod:`cellulard.adapters`
implement them for MCE and oFono; tests implement them in memory.

Notification callbacks are plain callables run on the event loop. Every
``on_*`` method returns an unsubscribe function.

Classes:
    ModeService: Device mode source (MCE)
    ModemInterface: A single modem
    ModemManagerInterface: The modem management service (oFono manager)
"""

import abc
from typing import Callable

# Returned by every subscription; calling it removes the subscription.
Unsubscribe = Callable[[], None]


class ModeService(abc.ABC):
    """Source of the device operating mode."""

    @abc.abstractmethod
    async def get_mode(self) -> str:
        """Query the current mode string.

        Returns:
            The mode string, e.g. ``"normal"`` or ``"flight"``.

        Raises:
            ModeQueryError: If the mode service cannot be queried.
        """

    @abc.abstractmethod
    def on_mode_changed(self, callback: Callable[[str], None]) -> Unsubscribe:
        """Subscribe to mode change broadcasts.

        Args:
            callback: Called with the new mode string on every transition.
        """


class ModemInterface(abc.ABC):
    """A modem as exposed by the modem management service."""

    @property
    @abc.abstractmethod
    def path(self) -> str:
        """Stable object path identifying the modem."""

    @property
    @abc.abstractmethod
    def powered(self) -> bool:
        """Whether the modem radio hardware is energized."""

    @property
    @abc.abstractmethod
    def online(self) -> bool:
        """Whether the modem is registered for service."""

    @property
    @abc.abstractmethod
    def ready(self) -> bool:
        """Whether the modem can accept power/connectivity commands."""

    @abc.abstractmethod
    def on_ready_changed(self, callback: Callable[["ModemInterface"], None]) -> Unsubscribe:
        """Subscribe to readiness changes.

        Args:
            callback: Called with the modem whenever ``ready`` changes.
        """

    @abc.abstractmethod
    async def set_powered(self, powered: bool) -> None:
        """Power the modem on or off.

        On success ``powered`` reflects the new value.

        Raises:
            ModemCommandError: If the management service rejects the request.
        """

    @abc.abstractmethod
    async def set_online(self, online: bool) -> None:
        """Bring the modem online or offline.

        Raises:
            ModemCommandError: If the management service rejects the request.
        """


class ModemManagerInterface(abc.ABC):
    """The modem management service."""

    @property
    @abc.abstractmethod
    def valid(self) -> bool:
        """Whether the management service is present and its modem list loaded."""

    @abc.abstractmethod
    def get_modems(self) -> list[ModemInterface]:
        """Snapshot of the currently known modems."""

    @abc.abstractmethod
    def on_valid_changed(self, callback: Callable[[], None]) -> Unsubscribe:
        """Subscribe to changes of ``valid``."""

    @abc.abstractmethod
    def on_modem_added(self, callback: Callable[[ModemInterface], None]) -> Unsubscribe:
        """Subscribe to modem additions."""

    @abc.abstractmethod
    def on_modem_removed(self, callback: Callable[[str], None]) -> Unsubscribe:
        """Subscribe to modem removals; the callback receives the modem path."""

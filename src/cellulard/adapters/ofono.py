"""oFono modem management adapter.

Implements :class:`~cellulard.interface.ModemManagerInterface` and
:class:`~cellulard.interface.ModemInterface` on top of the oFono D-Bus API.

The manager is valid while ``org.ofono`` owns its bus name and the modem
list has been loaded. A modem is ready once its ``Powered`` and ``Online``
properties are known; modems announced without them load their properties
first.

Classes:
    OfonoModem: A single oFono modem
    OfonoManager: The oFono manager object
"""

import asyncio
import logging
from typing import Any, Callable, Optional

from dbus_next import Message, Variant
from dbus_next.aio import MessageBus
from dbus_next.errors import DBusError

from cellulard.adapters.bus import (
    add_match,
    call_method,
    is_signal,
    match_rule,
    name_has_owner,
    remove_match,
)
from cellulard.constants import (
    DBUS_IF,
    DBUS_SERVICE,
    OFONO_MANAGER_IF,
    OFONO_MANAGER_PATH,
    OFONO_MODEM_IF,
    OFONO_SERVICE,
)
from cellulard.events import (
    EVENT_MODEM_ADDED,
    EVENT_MODEM_REMOVED,
    EVENT_READY_CHANGED,
    EVENT_VALID_CHANGED,
    EventEmitter,
)
from cellulard.exceptions import ModemCommandError
from cellulard.interface import ModemInterface, ModemManagerInterface, Unsubscribe

log = logging.getLogger(__name__)

PROPERTY_POWERED = "Powered"
PROPERTY_ONLINE = "Online"


def unpack_properties(properties: dict[str, Any]) -> dict[str, Any]:
    """Unwrap ``Variant`` values of an ``a{sv}`` dictionary."""
    return {
        name: value.value if isinstance(value, Variant) else value
        for name, value in (properties or {}).items()
    }


class OfonoModem(ModemInterface):
    """An oFono modem.

    Property values are cached from ``GetProperties``, ``ModemAdded`` and
    ``PropertyChanged``.
    """

    def __init__(
        self,
        bus: MessageBus,
        path: str,
        properties: Optional[dict[str, Any]] = None,
    ) -> None:
        """Initialize the modem.

        Args:
            bus: Connected system bus.
            path: oFono object path of the modem.
            properties: Initial (possibly Variant-wrapped) property values.
        """
        self._bus = bus
        self._path = path
        self._properties = unpack_properties(properties or {})
        self._events = EventEmitter()
        self._load_task: Optional[asyncio.Task] = None
        self._disposed = False

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def path(self) -> str:
        return self._path

    @property
    def powered(self) -> bool:
        return bool(self._properties.get(PROPERTY_POWERED, False))

    @property
    def online(self) -> bool:
        return bool(self._properties.get(PROPERTY_ONLINE, False))

    @property
    def ready(self) -> bool:
        return (
            not self._disposed
            and PROPERTY_POWERED in self._properties
            and PROPERTY_ONLINE in self._properties
        )

    def on_ready_changed(self, callback: Callable[[ModemInterface], None]) -> Unsubscribe:
        return self._events.on(EVENT_READY_CHANGED, callback)

    # =========================================================================
    # Commands
    # =========================================================================

    async def set_powered(self, powered: bool) -> None:
        await self._set_property(PROPERTY_POWERED, powered)

    async def set_online(self, online: bool) -> None:
        await self._set_property(PROPERTY_ONLINE, online)

    async def _set_property(self, name: str, value: bool) -> None:
        try:
            await call_method(
                self._bus,
                OFONO_SERVICE,
                self._path,
                OFONO_MODEM_IF,
                "SetProperty",
                "sv",
                [name, Variant("b", value)],
            )
        except DBusError as e:
            raise ModemCommandError(
                e.text or str(e), path=self._path, command=name, kind=e.type
            ) from e

        self._update(name, value)

    # =========================================================================
    # Loading and updates
    # =========================================================================

    def load(self) -> None:
        """Fetch properties in the background if the modem is not ready."""
        if self.ready or self._load_task is not None:
            return
        self._load_task = asyncio.get_running_loop().create_task(self._load())

    async def _load(self) -> None:
        try:
            body = await call_method(
                self._bus, OFONO_SERVICE, self._path, OFONO_MODEM_IF, "GetProperties"
            )
        except Exception as e:
            log.warning("Could not get properties of modem %s: %s", self._path, e)
            return
        finally:
            self._load_task = None

        if self._disposed:
            return

        was_ready = self.ready
        self._properties.update(unpack_properties(body[0]))
        if self.ready != was_ready:
            self._events.emit(EVENT_READY_CHANGED, self)

    def property_changed(self, name: str, value: Any) -> None:
        """Apply a ``PropertyChanged`` signal."""
        if isinstance(value, Variant):
            value = value.value
        self._update(name, value)

    def _update(self, name: str, value: Any) -> None:
        was_ready = self.ready
        self._properties[name] = value
        if self.ready != was_ready:
            self._events.emit(EVENT_READY_CHANGED, self)

    def dispose(self) -> None:
        """Mark the modem as gone and drop its listeners."""
        self._disposed = True
        if self._load_task is not None:
            self._load_task.cancel()
            self._load_task = None
        self._events.clear()

    def __repr__(self) -> str:
        return f"OfonoModem({self._path!r}, powered={self.powered}, online={self.online})"


class OfonoManager(ModemManagerInterface):
    """The oFono manager.

    Example:
        >>> manager = OfonoManager(bus)
        >>> manager.on_modem_added(lambda modem: print(modem.path))
        >>> await manager.start()
        >>> manager.valid
        True
        >>> await manager.close()
    """

    def __init__(self, bus: MessageBus) -> None:
        """Initialize the manager.

        Args:
            bus: Connected system bus.
        """
        self._bus = bus
        self._events = EventEmitter()
        self._modems: dict[str, OfonoModem] = {}
        self._valid = False
        self._started = False
        self._load_task: Optional[asyncio.Task] = None
        self._rules = [
            match_rule(
                type="signal",
                sender=DBUS_SERVICE,
                interface=DBUS_IF,
                member="NameOwnerChanged",
                arg0=OFONO_SERVICE,
            ),
            match_rule(type="signal", sender=OFONO_SERVICE, interface=OFONO_MANAGER_IF),
            match_rule(
                type="signal",
                sender=OFONO_SERVICE,
                interface=OFONO_MODEM_IF,
                member="PropertyChanged",
            ),
        ]

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Subscribe to oFono signals and load modems if oFono is running."""
        if self._started:
            return

        self._bus.add_message_handler(self._handle_message)
        for rule in self._rules:
            await add_match(self._bus, rule)
        self._started = True

        if await name_has_owner(self._bus, OFONO_SERVICE):
            await self._load_modems()
        else:
            log.info("ofono not running, waiting for it to appear")

    async def close(self) -> None:
        """Unsubscribe from oFono signals and drop all modems."""
        if not self._started:
            return
        self._started = False

        if self._load_task is not None:
            self._load_task.cancel()
            self._load_task = None

        self._bus.remove_message_handler(self._handle_message)
        for rule in self._rules:
            await remove_match(self._bus, rule)

        for modem in self._modems.values():
            modem.dispose()
        self._modems.clear()
        self._valid = False
        self._events.clear()

    # =========================================================================
    # ModemManagerInterface
    # =========================================================================

    @property
    def valid(self) -> bool:
        return self._valid

    def get_modems(self) -> list[ModemInterface]:
        return list(self._modems.values())

    def on_valid_changed(self, callback: Callable[[], None]) -> Unsubscribe:
        return self._events.on(EVENT_VALID_CHANGED, callback)

    def on_modem_added(self, callback: Callable[[ModemInterface], None]) -> Unsubscribe:
        return self._events.on(EVENT_MODEM_ADDED, callback)

    def on_modem_removed(self, callback: Callable[[str], None]) -> Unsubscribe:
        return self._events.on(EVENT_MODEM_REMOVED, callback)

    # =========================================================================
    # Modem list
    # =========================================================================

    async def _load_modems(self) -> None:
        try:
            body = await call_method(
                self._bus, OFONO_SERVICE, OFONO_MANAGER_PATH, OFONO_MANAGER_IF, "GetModems"
            )
        except Exception as e:
            log.error("Could not get ofono modems: %s", e)
            return

        for path, properties in body[0]:
            if path not in self._modems:
                self._modems[path] = self._create_modem(path, properties)

        self._set_valid(True)

    def _create_modem(self, path: str, properties: dict[str, Any]) -> OfonoModem:
        modem = OfonoModem(self._bus, path, properties)
        modem.load()
        return modem

    def _set_valid(self, valid: bool) -> None:
        if valid == self._valid:
            return
        self._valid = valid
        self._events.emit(EVENT_VALID_CHANGED)

    def _vanished(self) -> None:
        for modem in self._modems.values():
            modem.dispose()
        self._modems.clear()
        self._set_valid(False)

    # =========================================================================
    # Signal dispatch
    # =========================================================================

    def _handle_message(self, message: Message) -> None:
        try:
            self._dispatch(message)
        except Exception:
            log.exception("Error handling %s.%s", message.interface, message.member)
        return None

    def _dispatch(self, message: Message) -> None:
        if is_signal(message, DBUS_IF, "NameOwnerChanged"):
            name, old_owner, new_owner = message.body
            if name != OFONO_SERVICE:
                return
            if old_owner and not new_owner:
                log.info("ofono left the bus")
                if self._load_task is not None:
                    self._load_task.cancel()
                    self._load_task = None
                self._vanished()
            elif new_owner and not old_owner:
                log.info("ofono appeared on the bus")
                self._load_task = asyncio.get_running_loop().create_task(self._load_modems())

        elif is_signal(message, OFONO_MANAGER_IF, "ModemAdded"):
            path, properties = message.body
            if path in self._modems:
                return
            modem = self._create_modem(path, properties)
            self._modems[path] = modem
            self._events.emit(EVENT_MODEM_ADDED, modem)

        elif is_signal(message, OFONO_MANAGER_IF, "ModemRemoved"):
            path = message.body[0]
            modem = self._modems.pop(path, None)
            if modem is None:
                return
            modem.dispose()
            self._events.emit(EVENT_MODEM_REMOVED, path)

        elif is_signal(message, OFONO_MODEM_IF, "PropertyChanged"):
            modem = self._modems.get(message.path)
            if modem is not None:
                name, value = message.body
                modem.property_changed(name, value)

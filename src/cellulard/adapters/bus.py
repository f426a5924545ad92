"""D-Bus helpers shared by the service adapters.

Thin wrappers around :mod:`dbus_next` method calls and match rules.
"""

import logging
from typing import Any, Optional

from dbus_next import Message, MessageType
from dbus_next.aio import MessageBus
from dbus_next.errors import DBusError

from cellulard.constants import DBUS_IF, DBUS_PATH, DBUS_SERVICE

log = logging.getLogger(__name__)


def match_rule(**kwargs: Optional[str]) -> str:
    """Build a D-Bus match rule.

    Example:
        >>> match_rule(type="signal", interface="org.ofono.Manager")
        "type='signal',interface='org.ofono.Manager'"
    """
    return ",".join(f"{key}='{value}'" for key, value in kwargs.items() if value is not None)


async def call_method(
    bus: MessageBus,
    destination: str,
    path: str,
    interface: str,
    member: str,
    signature: str = "",
    body: Optional[list[Any]] = None,
) -> list[Any]:
    """Call a D-Bus method and return the reply body.

    Raises:
        DBusError: If the reply is an error message.
    """
    reply = await bus.call(
        Message(
            destination=destination,
            path=path,
            interface=interface,
            member=member,
            signature=signature,
            body=body or [],
        )
    )

    if reply.message_type == MessageType.ERROR:
        text = reply.body[0] if reply.body and isinstance(reply.body[0], str) else reply.error_name
        raise DBusError(reply.error_name, text, reply)

    return reply.body


async def add_match(bus: MessageBus, rule: str) -> None:
    """Ask the bus daemon to route messages matching ``rule`` to us."""
    await call_method(bus, DBUS_SERVICE, DBUS_PATH, DBUS_IF, "AddMatch", "s", [rule])


async def remove_match(bus: MessageBus, rule: str) -> None:
    """Remove a match rule, ignoring failures on a closing bus."""
    try:
        await call_method(bus, DBUS_SERVICE, DBUS_PATH, DBUS_IF, "RemoveMatch", "s", [rule])
    except Exception as e:
        log.debug("RemoveMatch %s failed: %s", rule, e)


async def name_has_owner(bus: MessageBus, name: str) -> bool:
    """Whether ``name`` currently has an owner on the bus."""
    body = await call_method(bus, DBUS_SERVICE, DBUS_PATH, DBUS_IF, "NameHasOwner", "s", [name])
    return bool(body[0])


def is_signal(message: Message, interface: str, member: str) -> bool:
    """Whether ``message`` is the signal ``interface.member``."""
    return (
        message.message_type == MessageType.SIGNAL
        and message.interface == interface
        and message.member == member
    )

"""Shared daemon state.

All mutable process-wide state lives in a single DaemonContext instance
that is passed explicitly to every component.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Optional

from cellulard.config import ControlConfig
from cellulard.interface import ModemInterface, Unsubscribe
from cellulard.types import OperatingMode


@dataclass
class DaemonContext:
    """State shared between the mode tracker, registry and controller.

    Attributes:
        config: Controller configuration (delays, normal mode string).
        mode: Current operating mode; written only by the mode tracker.
        loop: Event loop used for deferred work and timers.
        modems: Known modems keyed by path.
        pending_readiness: Unsubscribe functions of pending readiness
            subscriptions, keyed by modem path.
    """

    config: ControlConfig = field(default_factory=ControlConfig)
    mode: OperatingMode = OperatingMode.RESTRICTED
    loop: Optional[asyncio.AbstractEventLoop] = None
    modems: dict[str, ModemInterface] = field(default_factory=dict)
    pending_readiness: dict[str, Unsubscribe] = field(default_factory=dict)

    def get_loop(self) -> asyncio.AbstractEventLoop:
        """Return the configured loop, binding to the running loop on first use."""
        if self.loop is None:
            self.loop = asyncio.get_running_loop()
        return self.loop

    @property
    def normal(self) -> bool:
        """Whether the device is in normal operation."""
        return self.mode is OperatingMode.NORMAL

    def is_current(self, modem: ModemInterface) -> bool:
        """Whether ``modem`` is still the registered modem for its path."""
        return self.modems.get(modem.path) is modem

"""cellulard: keeps cellular modem power in sync with the device mode.

The daemon listens to MCE for device mode changes and to oFono for modems.
In normal mode every modem is powered and brought online; in any other
mode (e.g. flight mode) modems are powered off.

Quick Start:
    >>> import asyncio
    >>> from cellulard import Daemon, DaemonConfig
    >>>
    >>> asyncio.run(Daemon(DaemonConfig(detach=False)).run())
"""

__version__ = "0.1.0"

from cellulard.config import ControlConfig, DaemonConfig, LoggingConfig
from cellulard.context import DaemonContext
from cellulard.daemon import Daemon
from cellulard.exceptions import (
    BusConnectionError,
    CellulardError,
    ConfigurationError,
    DaemonizeError,
    ModemCommandError,
    ModeQueryError,
    StartupError,
)
from cellulard.interface import ModemInterface, ModemManagerInterface, ModeService
from cellulard.types import ModemState, OperatingMode

__all__ = [
    "__version__",
    # Daemon
    "Daemon",
    "DaemonContext",
    # Configuration
    "DaemonConfig",
    "ControlConfig",
    "LoggingConfig",
    # Interfaces
    "ModeService",
    "ModemInterface",
    "ModemManagerInterface",
    # Enums
    "OperatingMode",
    "ModemState",
    # Exceptions
    "CellulardError",
    "ConfigurationError",
    "StartupError",
    "DaemonizeError",
    "BusConnectionError",
    "ModeQueryError",
    "ModemCommandError",
]

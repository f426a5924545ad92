"""D-Bus service adapters.

Adapters:
    - MceModeService: Device mode from MCE
    - OfonoManager / OfonoModem: Modems from oFono
"""

from cellulard.adapters.mce import MceModeService
from cellulard.adapters.ofono import OfonoManager, OfonoModem

__all__ = [
    "MceModeService",
    "OfonoManager",
    "OfonoModem",
]

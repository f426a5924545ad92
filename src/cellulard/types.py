"""Core data types and enums for cellulard."""

from enum import Enum

from cellulard.constants import MCE_NORMAL_MODE


class OperatingMode(Enum):
    """Device operating mode as seen by the modem controller."""

    NORMAL = "normal"
    """Normal operation: modems should be powered and online."""

    RESTRICTED = "restricted"
    """Flight mode or any other non-normal mode: modems should be powered off."""

    @classmethod
    def from_mode_string(
        cls, mode: str, normal_mode: str = MCE_NORMAL_MODE
    ) -> "OperatingMode":
        """Map a mode string broadcast by the mode service.

        Args:
            mode: Mode string as reported by the mode service.
            normal_mode: The string designating normal operation.

        Returns:
            NORMAL if ``mode`` equals ``normal_mode``, RESTRICTED otherwise.
        """
        return cls.NORMAL if mode == normal_mode else cls.RESTRICTED


class ModemState(Enum):
    """Convergence state of a modem, derived from its powered/online flags."""

    POWER_MISMATCH = "power_mismatch"
    """Powered flag differs from the desired one."""

    AWAITING_ONLINE = "awaiting_online"
    """Powered as desired but still offline while it should be online."""

    CONVERGED = "converged"
    """Nothing left to do."""

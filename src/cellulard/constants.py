"""Protocol constants for cellulard.

This module defines the D-Bus names used to talk to the mode service (MCE)
and the modem management service (oFono), plus default timing values for
the modem controller.
"""

# =============================================================================
# Controller Timing (seconds)
# =============================================================================

DEFAULT_SETTLE_DELAY: float = 3.0
"""Delay between a modem being powered and the online request.

Some modems (oFono on the Droid 4) reject an online request issued right
after power-up.
"""

DEFAULT_RETRY_DELAY: float = 5.0
"""Delay before retrying a power request that hit an operation in progress."""

# =============================================================================
# MCE (mode service)
# =============================================================================

MCE_SERVICE: str = "com.nokia.mce"
MCE_REQUEST_PATH: str = "/com/nokia/mce/request"
MCE_REQUEST_IF: str = "com.nokia.mce.request"
MCE_SIGNAL_PATH: str = "/com/nokia/mce/signal"
MCE_SIGNAL_IF: str = "com.nokia.mce.signal"

MCE_DEVICE_MODE_GET: str = "get_device_mode"
MCE_DEVICE_MODE_SIG: str = "sig_device_mode_ind"

MCE_NORMAL_MODE: str = "normal"
"""Mode string reported by MCE when the device is in normal operation."""

# =============================================================================
# oFono (modem management service)
# =============================================================================

OFONO_SERVICE: str = "org.ofono"
OFONO_MANAGER_PATH: str = "/"
OFONO_MANAGER_IF: str = "org.ofono.Manager"
OFONO_MODEM_IF: str = "org.ofono.Modem"

OFONO_ERROR_IN_PROGRESS: str = "org.ofono.Error.InProgress"
"""D-Bus error returned while the modem is still busy with a previous request."""

# =============================================================================
# D-Bus daemon
# =============================================================================

DBUS_SERVICE: str = "org.freedesktop.DBus"
DBUS_PATH: str = "/org/freedesktop/DBus"
DBUS_IF: str = "org.freedesktop.DBus"

# =============================================================================
# Environment
# =============================================================================

ENV_PREFIX: str = "CELLULARD_"
"""Prefix of environment variables read by the configuration layer."""

SYSLOG_IDENT: str = "cellulard"

"""Custom exception hierarchy for cellulard.

Exception Hierarchy:
    CellulardError (base)
    ├── ConfigurationError - Invalid configuration
    ├── StartupError - Conditions that abort daemon startup
    │   ├── DaemonizeError - Detaching from the terminal failed
    │   ├── BusConnectionError - System bus unreachable
    │   └── ModeQueryError - Initial device mode query failed
    └── ModemCommandError - An asynchronous modem command failed
"""

from typing import Any, Optional

from cellulard.constants import OFONO_ERROR_IN_PROGRESS


class CellulardError(Exception):
    """Base exception for all cellulard errors.

    Attributes:
        message: Human-readable error message.
        details: Additional error context and details.

    Example:
        >>> raise CellulardError("Operation failed", {"path": "/ril_0"})
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message

    def __repr__(self) -> str:
        """Return detailed string representation."""
        return f"{self.__class__.__name__}({self.message!r}, details={self.details!r})"


class ConfigurationError(CellulardError):
    """Exception raised for invalid configuration.

    Attributes:
        field: The configuration field that is invalid.
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        field: Optional[str] = None,
    ) -> None:
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)
        self.field = field


class StartupError(CellulardError):
    """Exception raised for conditions that make the daemon unable to start.

    Startup errors are fatal: the process exits with a non-zero status.
    """

    pass


class DaemonizeError(StartupError):
    """Exception raised when the process cannot detach into the background."""

    def __init__(self, message: str, errno: Optional[int] = None) -> None:
        details = {"errno": errno} if errno is not None else None
        super().__init__(message, details)
        self.errno = errno


class BusConnectionError(StartupError):
    """Exception raised when the D-Bus system bus cannot be reached."""

    pass


class ModeQueryError(StartupError):
    """Exception raised when the initial device mode cannot be obtained.

    There is no safe default mode, so this always aborts startup.
    """

    pass


class ModemCommandError(CellulardError):
    """Exception raised when a modem command fails.

    Attributes:
        path: Object path of the modem.
        command: Command that failed (e.g. ``"Powered"``).
        kind: Machine-readable error kind (the D-Bus error name for oFono).

    Example:
        >>> raise ModemCommandError(
        ...     "Operation already in progress",
        ...     path="/ril_0",
        ...     command="Powered",
        ...     kind="org.ofono.Error.InProgress",
        ... )
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        path: Optional[str] = None,
        command: Optional[str] = None,
        kind: Optional[str] = None,
    ) -> None:
        details = details or {}
        if path:
            details["path"] = path
        if command:
            details["command"] = command
        if kind:
            details["kind"] = kind
        super().__init__(message, details)
        self.path = path
        self.command = command
        self.kind = kind

    @property
    def in_progress(self) -> bool:
        """Whether the modem reported an operation already in progress."""
        return self.kind == OFONO_ERROR_IN_PROGRESS

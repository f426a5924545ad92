"""Logger manager for cellulard.

This module provides a LoggerManager class that wires the ``cellulard``
logger tree to either a rich console handler or the local syslog daemon.
"""

import logging
import logging.handlers
import os
from datetime import datetime, timezone
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from cellulard.config import LoggingConfig
from cellulard.constants import SYSLOG_IDENT

ROOT_LOGGER_NAME = "cellulard"
SYSLOG_SOCKET = "/dev/log"


class TextFormatter(logging.Formatter):
    """Human-readable text formatter.

    Produces log entries in traditional text format:
        2024-01-15T10:30:45.123Z INFO     [cellulard.managers.controller] modem /ril_0 power set to on

    With ``ident`` set the timestamp is dropped and the entry is prefixed
    syslog style instead:
        cellulard[1234]: INFO [cellulard.managers.controller] modem /ril_0 power set to on
    """

    def __init__(self, ident: Optional[str] = None) -> None:
        """Initialize the text formatter.

        Args:
            ident: Syslog identity; when set the output is syslog style.
        """
        super().__init__()
        self.ident = ident

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as text.

        Args:
            record: The log record to format.

        Returns:
            Formatted text log entry.
        """
        if self.ident:
            parts = [f"{self.ident}[{os.getpid()}]:", record.levelname]
        else:
            dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
            timestamp = dt.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
            parts = [timestamp, record.levelname.ljust(8)]

        parts.append(f"[{record.name}]")
        parts.append(record.getMessage())

        result = " ".join(parts)

        if record.exc_info:
            result += "\n" + self.formatException(record.exc_info)

        return result


class LoggerManager:
    """Manager for the cellulard logger tree.

    Example:
        >>> manager = LoggerManager(LoggingConfig(level="DEBUG", target="console"))
        >>> manager.configure(detached=False)
        >>> get_logger("daemon").info("Hello")
        >>> manager.shutdown()
    """

    def __init__(self, config: LoggingConfig, console: Optional[Console] = None) -> None:
        """Initialize the logger manager.

        Args:
            config: Logging configuration.
            console: Rich console for the console handler (stderr by default).
        """
        self.config = config
        self._console = console
        self._handler: Optional[logging.Handler] = None
        self._configured = False

    def configure(self, detached: bool = False) -> None:
        """Configure the cellulard logger and its handler.

        Should be called once during startup.

        Args:
            detached: Whether the process runs in the background.
        """
        if self._configured:
            return

        self._handler = self._create_handler(self.resolve_target(detached))

        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        root_logger.setLevel(self._parse_level(self.config.level))
        root_logger.addHandler(self._handler)

        # Prevent propagation to Python's root logger
        root_logger.propagate = False

        self._configured = True

    def resolve_target(self, detached: bool) -> str:
        """Resolve the ``auto`` target into ``console`` or ``syslog``."""
        if self.config.target == "auto":
            return "syslog" if detached else "console"
        return self.config.target

    def _create_handler(self, target: str) -> logging.Handler:
        if target == "syslog":
            handler: logging.Handler = logging.handlers.SysLogHandler(
                address=SYSLOG_SOCKET,
                facility=logging.handlers.SysLogHandler.LOG_DAEMON,
            )
            handler.setFormatter(TextFormatter(ident=SYSLOG_IDENT))
            return handler

        return RichHandler(
            console=self._console or Console(stderr=True),
            rich_tracebacks=True,
            show_path=False,
        )

    def shutdown(self) -> None:
        """Remove the handler and release its resources."""
        if not self._configured:
            return

        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        if self._handler:
            root_logger.removeHandler(self._handler)
            self._handler.close()
            self._handler = None
        root_logger.setLevel(logging.NOTSET)
        root_logger.propagate = True

        self._configured = False

    def _parse_level(self, level: str) -> int:
        return getattr(logging, level.upper(), logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """Convenience function to get a logger below ``cellulard``.

    Example:
        >>> logger = get_logger("daemon")
        >>> logger.name
        'cellulard.daemon'
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)

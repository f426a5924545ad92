"""Configuration module for cellulard.

Configuration is built from defaults, an optional YAML file and
``CELLULARD_*`` environment variables, in increasing order of precedence.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from cellulard.constants import (
    DEFAULT_RETRY_DELAY,
    DEFAULT_SETTLE_DELAY,
    ENV_PREFIX,
    MCE_NORMAL_MODE,
)
from cellulard.exceptions import ConfigurationError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_TARGETS = ("auto", "console", "syslog")


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(f"{ENV_PREFIX}{name}", default)


def _env_float(name: str, default: float) -> float:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(
            f"Invalid number in {ENV_PREFIX}{name}: {raw!r}",
            field=name.lower(),
        ) from None


def _file_number(section: dict[str, Any], name: str) -> None:
    value = section.pop(name, None)
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"Invalid number for {name}: {value!r}", field=name)
    section[name] = float(value)


def _file_string(section: dict[str, Any], name: str) -> None:
    value = section.pop(name, None)
    if value is None:
        return
    if not isinstance(value, str):
        raise ConfigurationError(f"Invalid string for {name}: {value!r}", field=name)
    section[name] = value


@dataclass
class ControlConfig:
    """Configuration for the modem controller."""

    settle_delay: float = DEFAULT_SETTLE_DELAY
    retry_delay: float = DEFAULT_RETRY_DELAY
    normal_mode: str = MCE_NORMAL_MODE

    @classmethod
    def from_env(cls, base: Optional["ControlConfig"] = None) -> "ControlConfig":
        """Create configuration from environment variables."""
        base = base or cls()
        return cls(
            settle_delay=_env_float("SETTLE_DELAY", base.settle_delay),
            retry_delay=_env_float("RETRY_DELAY", base.retry_delay),
            normal_mode=_env("NORMAL_MODE", base.normal_mode),
        )


@dataclass
class LoggingConfig:
    """Configuration for logging.

    ``target`` selects the handler: ``console`` logs through rich on stderr,
    ``syslog`` logs to the local syslog daemon, and ``auto`` picks syslog when
    the daemon detaches and the console otherwise.
    """

    level: str = "INFO"
    target: str = "auto"

    @classmethod
    def from_env(cls, base: Optional["LoggingConfig"] = None) -> "LoggingConfig":
        """Create configuration from environment variables."""
        base = base or cls()
        return cls(
            level=_env("LOG_LEVEL", base.level).upper(),
            target=_env("LOG_TARGET", base.target).lower(),
        )


@dataclass
class DaemonConfig:
    """Complete daemon configuration.

    Example:
        >>> config = DaemonConfig.from_file("/etc/cellulard.yaml")
        >>> config.detach = False
        >>> config.validate()
    """

    detach: bool = True
    control: ControlConfig = field(default_factory=ControlConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "DaemonConfig":
        """Create configuration from environment variables.

        Environment Variables:
            CELLULARD_SETTLE_DELAY: Seconds between power-on and online (default: 3)
            CELLULARD_RETRY_DELAY: Seconds between busy power retries (default: 5)
            CELLULARD_NORMAL_MODE: Mode string meaning normal operation (default: normal)
            CELLULARD_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
            CELLULARD_LOG_TARGET: auto, console or syslog (default: auto)
        """
        return cls(
            control=ControlConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DaemonConfig":
        """Create configuration from a dictionary.

        Environment variables still override values from ``data``.

        Args:
            data: Mapping with optional ``detach``, ``control`` and ``logging`` keys.

        Raises:
            ConfigurationError: If a section is malformed, has unknown keys
                or holds a value of the wrong type.
        """
        control = data.get("control") or {}
        logging_section = data.get("logging") or {}
        if not isinstance(control, dict) or not isinstance(logging_section, dict):
            raise ConfigurationError("Configuration sections must be mappings")

        detach = data.get("detach", True)
        if not isinstance(detach, bool):
            raise ConfigurationError(f"Invalid boolean for detach: {detach!r}", field="detach")

        control = dict(control)
        logging_section = dict(logging_section)
        _file_number(control, "settle_delay")
        _file_number(control, "retry_delay")
        _file_string(control, "normal_mode")
        _file_string(logging_section, "level")
        _file_string(logging_section, "target")

        try:
            control_config = ControlConfig(**control)
            logging_config = LoggingConfig(**logging_section)
        except TypeError as e:
            raise ConfigurationError(f"Unknown configuration key: {e}") from e

        return cls(
            detach=detach,
            control=ControlConfig.from_env(control_config),
            logging=LoggingConfig.from_env(logging_config),
        )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "DaemonConfig":
        """Load configuration from a YAML file.

        Args:
            path: Path to the YAML file.

        Raises:
            ConfigurationError: If the file cannot be read or parsed.
        """
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read configuration file: {e}", {"path": str(path)}
            ) from e
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {e}", {"path": str(path)}
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                "Configuration file must contain a mapping", {"path": str(path)}
            )
        return cls.from_dict(data)

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigurationError: If configuration is invalid.
        """
        if self.control.settle_delay < 0:
            raise ConfigurationError(
                f"Invalid settle delay: {self.control.settle_delay}",
                field="settle_delay",
            )
        if self.control.retry_delay <= 0:
            raise ConfigurationError(
                f"Invalid retry delay: {self.control.retry_delay}",
                field="retry_delay",
            )
        if not self.control.normal_mode:
            raise ConfigurationError(
                "Normal mode string must not be empty", field="normal_mode"
            )
        if self.logging.level.upper() not in LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid log level: {self.logging.level}", field="level"
            )
        if self.logging.target not in LOG_TARGETS:
            raise ConfigurationError(
                f"Invalid log target: {self.logging.target}", field="target"
            )

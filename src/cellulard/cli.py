"""Command-line entry point for cellulard.

Example:
    $ cellulard              # detach and log to syslog
    $ cellulard -n -v        # stay in the foreground with debug output
    $ cellulard -c /etc/cellulard.yaml
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from cellulard import __version__
from cellulard.config import DaemonConfig
from cellulard.daemon import Daemon, daemonize
from cellulard.exceptions import CellulardError, ConfigurationError
from cellulard.log import LoggerManager

console = Console(stderr=True)
log = logging.getLogger(__name__)


def load_config(
    config_path: Optional[Path], nodetach: bool, verbose: bool
) -> DaemonConfig:
    """Build the daemon configuration from the command line options.

    Raises:
        ConfigurationError: If the configuration is invalid.
    """
    config = DaemonConfig.from_file(config_path) if config_path else DaemonConfig.from_env()
    if nodetach:
        config.detach = False
    if verbose:
        config.logging.level = "DEBUG"
    config.validate()
    return config


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "-n",
    "--nodetach",
    is_flag=True,
    help="Don't run as daemon in background",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML configuration file",
)
@click.version_option(__version__, prog_name="cellulard")
def cli(nodetach: bool, verbose: bool, config_path: Optional[Path]) -> None:
    """Keep modem power in sync with the device mode.

    Powers modems on and brings them online in normal mode, powers them
    off in flight mode.
    """
    try:
        config = load_config(config_path, nodetach, verbose)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    log_manager = LoggerManager(config.logging, console=console)
    log_manager.configure(detached=config.detach)

    try:
        if config.detach:
            daemonize()
        asyncio.run(Daemon(config).run())
    except CellulardError as e:
        log.critical("%s", e)
        sys.exit(1)
    finally:
        log_manager.shutdown()


def main() -> None:
    """Console script entry point."""
    cli(prog_name="cellulard")


if __name__ == "__main__":
    main()

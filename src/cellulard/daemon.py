"""cellulard daemon.

Wires the mode tracker, manager watcher, registry, controller and retry
guard to the MCE and oFono adapters and runs them until SIGTERM/SIGINT.

Startup order:
    1. Connect to the system bus
    2. Start the MCE adapter and query the initial mode (fatal on failure)
    3. Start the oFono adapter and the manager watcher

Shutdown runs the same steps in reverse.
"""

import asyncio
import logging
import os
import signal
from typing import Optional

from dbus_next import BusType
from dbus_next.aio import MessageBus

from cellulard.adapters.mce import MceModeService
from cellulard.adapters.ofono import OfonoManager
from cellulard.config import DaemonConfig
from cellulard.context import DaemonContext
from cellulard.exceptions import BusConnectionError, DaemonizeError
from cellulard.interface import ModemManagerInterface, ModeService
from cellulard.managers import (
    ManagerWatcher,
    ModemController,
    ModemRegistry,
    ModeTracker,
    RetryGuard,
)

log = logging.getLogger(__name__)


def daemonize() -> None:
    """Detach from the controlling terminal.

    The working directory and standard streams are left alone.

    Raises:
        DaemonizeError: If forking or creating a new session fails.
    """
    try:
        pid = os.fork()
    except OSError as e:
        raise DaemonizeError(f"Could not run as daemon: {e}", e.errno) from e

    if pid > 0:
        os._exit(0)

    try:
        os.setsid()
    except OSError as e:
        raise DaemonizeError(f"Could not run as daemon: {e}", e.errno) from e


class Daemon:
    """The cellulard daemon.

    Services can be injected for testing; otherwise the daemon connects to
    the system bus and creates the MCE and oFono adapters itself.

    Example:
        >>> daemon = Daemon(DaemonConfig(detach=False))
        >>> asyncio.run(daemon.run())
    """

    def __init__(
        self,
        config: DaemonConfig,
        mode_service: Optional[ModeService] = None,
        manager: Optional[ModemManagerInterface] = None,
    ) -> None:
        """Initialize the daemon.

        Args:
            config: Daemon configuration.
            mode_service: Mode service to use instead of MCE.
            manager: Modem manager to use instead of oFono.

        Raises:
            ValueError: If only one of ``mode_service`` and ``manager`` is given.
        """
        if (mode_service is None) != (manager is None):
            raise ValueError("mode_service and manager must be given together")

        self._config = config
        self._mode_service = mode_service
        self._manager = manager
        self._owns_services = mode_service is None and manager is None

        self._bus: Optional[MessageBus] = None
        self._context = DaemonContext(config=config.control)
        self._guard: Optional[RetryGuard] = None
        self._controller: Optional[ModemController] = None
        self._registry: Optional[ModemRegistry] = None
        self._tracker: Optional[ModeTracker] = None
        self._watcher: Optional[ManagerWatcher] = None

        self._stop_event: Optional[asyncio.Event] = None
        self._running = False

    @property
    def context(self) -> DaemonContext:
        """The shared daemon context."""
        return self._context

    @property
    def registry(self) -> Optional[ModemRegistry]:
        """The modem registry, once started."""
        return self._registry

    @property
    def is_running(self) -> bool:
        """Whether the daemon has started and not yet stopped."""
        return self._running

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Start the daemon.

        Raises:
            BusConnectionError: If the system bus cannot be reached.
            ModeQueryError: If the initial device mode cannot be obtained.
        """
        if self._running:
            return

        self._context.loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()

        try:
            await self._start_services()

            self._guard = RetryGuard(self._context)
            self._controller = ModemController(self._context, self._guard)
            self._registry = ModemRegistry(
                self._context, self._manager, self._controller, self._guard
            )

            self._tracker = ModeTracker(self._context, self._mode_service, self._registry.reconcile)
            await self._tracker.start()
            log.info("device mode is %s", self._context.mode.value)

            self._watcher = ManagerWatcher(self._context, self._manager, self._registry)
            self._watcher.start()
            if self._owns_services:
                await self._manager.start()
        except Exception:
            await self._teardown()
            raise

        self._running = True
        log.info("cellulard started")

    async def _start_services(self) -> None:
        if not self._owns_services:
            return

        try:
            self._bus = await MessageBus(bus_type=BusType.SYSTEM).connect()
        except Exception as e:
            raise BusConnectionError(f"Could not get dbus system bus: {e}") from e

        self._mode_service = MceModeService(self._bus)
        self._manager = OfonoManager(self._bus)
        await self._mode_service.start()

    async def stop(self) -> None:
        """Stop the daemon. Safe to call more than once."""
        if self._stop_event is not None:
            self._stop_event.set()

        if not self._running:
            return
        self._running = False

        await self._teardown()
        log.info("cellulard stopped")

    async def _teardown(self) -> None:
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None

        if self._tracker is not None:
            self._tracker.stop()
            self._tracker = None

        if self._controller is not None:
            await self._controller.close()
            self._controller = None

        if self._guard is not None:
            self._guard.close()
            self._guard = None

        for unsubscribe in self._context.pending_readiness.values():
            unsubscribe()
        self._context.pending_readiness.clear()
        self._context.modems.clear()
        self._registry = None

        if self._owns_services:
            if self._manager is not None:
                await self._manager.close()
            if self._mode_service is not None:
                await self._mode_service.close()
            self._manager = None
            self._mode_service = None

        if self._bus is not None:
            self._bus.disconnect()
            self._bus = None

    async def wait_stopped(self) -> None:
        """Wait until ``stop()`` is requested."""
        if self._stop_event is not None:
            await self._stop_event.wait()

    async def run(self) -> None:
        """Start, run until SIGTERM/SIGINT, then stop."""
        await self.start()

        loop = asyncio.get_running_loop()
        for signum in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(signum, self._request_stop, signum)

        try:
            await self.wait_stopped()
        finally:
            for signum in (signal.SIGTERM, signal.SIGINT):
                loop.remove_signal_handler(signum)
            await self.stop()

    def _request_stop(self, signum: int) -> None:
        log.info("Received %s, shutting down", signal.Signals(signum).name)
        if self._stop_event is not None:
            self._stop_event.set()

"""Manager Watcher.

Follows the modem management service: its validity and its modem
additions and removals.

Classes:
    ManagerWatcher: Subscriptions to the modem manager
"""

import logging

from cellulard.context import DaemonContext
from cellulard.interface import ModemManagerInterface, Unsubscribe
from cellulard.managers.registry import ModemRegistry

log = logging.getLogger(__name__)


class ManagerWatcher:
    """Watcher for the modem management service.

    When the manager becomes valid a reconciliation pass is scheduled on the
    event loop rather than run from inside the notification. The pass checks
    validity again when it runs. When the manager becomes invalid all known
    modems are dropped.

    Example:
        >>> watcher = ManagerWatcher(context, manager, registry)
        >>> watcher.start()
        >>> # ...
        >>> watcher.stop()
    """

    def __init__(
        self,
        context: DaemonContext,
        manager: ModemManagerInterface,
        registry: ModemRegistry,
    ) -> None:
        """Initialize the watcher.

        Args:
            context: Shared daemon context.
            manager: The modem management service.
            registry: Registry receiving modem notifications.
        """
        self._context = context
        self._manager = manager
        self._registry = registry
        self._subscriptions: list[Unsubscribe] = []

    def start(self) -> None:
        """Subscribe to manager notifications."""
        if self._subscriptions:
            return

        self._subscriptions = [
            self._manager.on_valid_changed(self._valid_changed),
            self._manager.on_modem_added(self._registry.on_modem_added),
            self._manager.on_modem_removed(self._registry.on_modem_removed),
        ]

        if self._manager.valid:
            self._schedule_reconcile()

    def stop(self) -> None:
        """Unsubscribe from manager notifications."""
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions = []

    def _valid_changed(self) -> None:
        if self._manager.valid:
            log.debug("ofono manager become valid")
            self._schedule_reconcile()
        else:
            log.info("ofono manager gone, dropping %d modem(s)", len(self._context.modems))
            self._registry.clear()

    def _schedule_reconcile(self) -> None:
        self._context.get_loop().call_soon(self._registry.reconcile)

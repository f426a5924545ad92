"""Modem Registry.

Tracks the modems reported by the management service and, for modems that
are not ready yet, the single readiness subscription waiting for them.

Classes:
    ModemRegistry: Known modems and pending readiness subscriptions
"""

import logging
from typing import Optional

from cellulard.context import DaemonContext
from cellulard.interface import ModemInterface, ModemManagerInterface
from cellulard.managers.controller import ModemController
from cellulard.managers.retry import RetryGuard

log = logging.getLogger(__name__)


class ModemRegistry:
    """Registry of known modems.

    Ready modems are handed straight to the controller. Modems that are not
    ready get one readiness subscription; when it fires the subscription is
    dropped and the modem is handed to the controller.

    Example:
        >>> registry = ModemRegistry(context, manager, controller, guard)
        >>> registry.on_modem_added(modem)
        >>> registry.reconcile()
        >>> registry.on_modem_removed(modem.path)
    """

    def __init__(
        self,
        context: DaemonContext,
        manager: ModemManagerInterface,
        controller: ModemController,
        guard: RetryGuard,
    ) -> None:
        """Initialize the registry.

        Args:
            context: Shared daemon context holding the modem maps.
            manager: The modem management service.
            controller: Controller modems are handed to once ready.
            guard: Retry guard, notified when a modem goes away.
        """
        self._context = context
        self._manager = manager
        self._controller = controller
        self._guard = guard

    # =========================================================================
    # Notifications
    # =========================================================================

    def on_modem_added(self, modem: ModemInterface) -> None:
        """Handle a modem reported by the management service."""
        log.info("modem %s added", modem.path)
        self.control_if_ready(modem)

    def on_modem_removed(self, path: str) -> None:
        """Handle removal of the modem at ``path``."""
        log.info("modem %s removed", path)

        self._context.modems.pop(path, None)

        unsubscribe = self._context.pending_readiness.pop(path, None)
        if unsubscribe is not None:
            unsubscribe()

        self._guard.dispose(path)
        self._controller.forget(path)

    # =========================================================================
    # Control
    # =========================================================================

    def control_if_ready(self, modem: ModemInterface) -> None:
        """Hand ``modem`` to the controller, waiting for readiness if needed."""
        path = modem.path
        self._track(modem)

        if modem.ready:
            self._controller.control(modem)
            return

        if path in self._context.pending_readiness:
            return

        log.debug("modem %s not ready, waiting to become valid.", path)
        self._context.pending_readiness[path] = modem.on_ready_changed(self._ready_changed)

    def _ready_changed(self, modem: ModemInterface) -> None:
        path = modem.path

        if not modem.ready:
            return

        unsubscribe = self._context.pending_readiness.pop(path, None)
        if unsubscribe is None:
            # Notification already in flight when the modem was removed.
            return
        unsubscribe()

        if not self._context.is_current(modem):
            return

        self._controller.control(modem)

    def reconcile(self) -> None:
        """Re-apply control to every modem the management service knows."""
        if not self._manager.valid:
            log.debug("modem manager not valid, skipping reconciliation")
            return

        for modem in self._manager.get_modems():
            try:
                self.control_if_ready(modem)
            except Exception:
                log.exception("Error controlling modem %s", modem.path)

    def clear(self) -> None:
        """Drop every known modem through the removal path."""
        for path in list(self._context.modems):
            self.on_modem_removed(path)
        for path in list(self._context.pending_readiness):
            self.on_modem_removed(path)

    def _track(self, modem: ModemInterface) -> None:
        current = self._context.modems.get(modem.path)
        if current is modem:
            return
        if current is not None:
            # Same path, new object: the old one is gone.
            self.on_modem_removed(modem.path)
        self._context.modems[modem.path] = modem

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, path: str) -> Optional[ModemInterface]:
        """Get the known modem at ``path``."""
        return self._context.modems.get(path)

    @property
    def known_paths(self) -> list[str]:
        """Paths of all known modems."""
        return list(self._context.modems)

    @property
    def pending_paths(self) -> list[str]:
        """Paths of modems waiting to become ready."""
        return list(self._context.pending_readiness)

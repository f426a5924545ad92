"""Mode Tracker.

Holds the current operating mode. The mode is queried once at startup and
then follows the mode service's broadcasts; each broadcast schedules a
reconciliation pass.

Classes:
    ModeTracker: Current operating mode holder
"""

import logging
from typing import Callable, Optional

from cellulard.context import DaemonContext
from cellulard.exceptions import ModeQueryError
from cellulard.interface import ModeService, Unsubscribe
from cellulard.types import OperatingMode

log = logging.getLogger(__name__)


class ModeTracker:
    """Tracker for the device operating mode.

    Example:
        >>> tracker = ModeTracker(context, mce, registry.reconcile)
        >>> await tracker.start()  # raises ModeQueryError if MCE is unreachable
        >>> tracker.current_mode
        <OperatingMode.NORMAL: 'normal'>
    """

    def __init__(
        self,
        context: DaemonContext,
        service: ModeService,
        reconcile: Callable[[], None],
    ) -> None:
        """Initialize the tracker.

        Args:
            context: Shared daemon context the mode is stored in.
            service: The mode service.
            reconcile: Reconciliation pass scheduled after each mode change.
        """
        self._context = context
        self._service = service
        self._reconcile = reconcile
        self._unsubscribe: Optional[Unsubscribe] = None

    @property
    def current_mode(self) -> OperatingMode:
        """The current operating mode."""
        return self._context.mode

    async def start(self) -> None:
        """Subscribe to mode broadcasts and query the initial mode.

        Raises:
            ModeQueryError: If the initial mode cannot be obtained.
        """
        self._unsubscribe = self._service.on_mode_changed(self._mode_changed)

        try:
            mode = await self._service.get_mode()
        except Exception as e:
            self.stop()
            if isinstance(e, ModeQueryError):
                raise
            raise ModeQueryError(f"Could not get device mode: {e}") from e

        self._set_mode(mode)

    def stop(self) -> None:
        """Unsubscribe from mode broadcasts."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _set_mode(self, mode: str) -> None:
        new_mode = OperatingMode.from_mode_string(mode, self._context.config.normal_mode)
        if new_mode is not self._context.mode:
            log.info("device mode is now %s (%s)", mode, new_mode.value)
        self._context.mode = new_mode

    def _mode_changed(self, mode: str) -> None:
        log.debug("device mode changed to %s", mode)
        self._set_mode(mode)
        self._context.get_loop().call_soon(self._reconcile)

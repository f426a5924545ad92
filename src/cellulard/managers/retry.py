"""Deferred retries that never fire against removed modems.

Classes:
    RetryHandle: One scheduled retry for a modem
    RetryGuard: Scheduler keeping at most one retry per modem
"""

import asyncio
import logging
import weakref
from typing import Callable, Optional

from cellulard.context import DaemonContext
from cellulard.interface import ModemInterface

log = logging.getLogger(__name__)

RetryAction = Callable[[ModemInterface], None]


class RetryHandle:
    """A scheduled retry.

    Holds only a weak reference to the modem. Once ``invalidated`` is set the
    retry is inert: firing it does nothing.

    Attributes:
        path: Path of the modem the retry is for.
        delay: Delay the retry was scheduled with, in seconds.
        invalidated: Set when the modem is disposed or the retry superseded.
    """

    def __init__(
        self,
        modem: ModemInterface,
        delay: float,
        action: RetryAction,
    ) -> None:
        self.path = modem.path
        self.delay = delay
        self.invalidated = False
        self._modem_ref = weakref.ref(modem)
        self._action = action
        self._timer: Optional[asyncio.TimerHandle] = None

    @property
    def modem(self) -> Optional[ModemInterface]:
        """The modem, or None if it has been garbage collected."""
        return self._modem_ref()

    def invalidate(self) -> None:
        """Mark the retry as stale. The timer is left to expire on its own."""
        self.invalidated = True

    def cancel(self) -> None:
        """Invalidate the retry and cancel its timer."""
        self.invalidated = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


class RetryGuard:
    """Scheduler for deferred modem retries.

    At most one retry is outstanding per modem path. Scheduling a new retry
    for a path supersedes the previous one. Disposing a path only marks its
    retry invalid; the timer still fires and then does nothing.

    Example:
        >>> guard = RetryGuard(context)
        >>> guard.schedule(modem, 5.0, controller.control)
        >>> # modem removed before the timer fires
        >>> guard.dispose(modem.path)
    """

    def __init__(self, context: DaemonContext) -> None:
        """Initialize the guard.

        Args:
            context: Shared daemon context providing the event loop.
        """
        self._context = context
        self._pending: dict[str, RetryHandle] = {}

    def schedule(
        self,
        modem: ModemInterface,
        delay: float,
        action: RetryAction,
    ) -> RetryHandle:
        """Schedule ``action(modem)`` after ``delay`` seconds.

        Args:
            modem: Modem to retry.
            delay: Delay in seconds.
            action: Callable invoked with the modem when the timer fires.

        Returns:
            The handle of the scheduled retry.
        """
        previous = self._pending.pop(modem.path, None)
        if previous is not None:
            log.debug("modem %s retry superseded", modem.path)
            previous.cancel()

        handle = RetryHandle(modem, delay, action)
        handle._timer = self._context.get_loop().call_later(delay, self._fire, handle)
        self._pending[modem.path] = handle
        return handle

    def dispose(self, path: str) -> None:
        """Invalidate the pending retry for ``path``, if any."""
        handle = self._pending.pop(path, None)
        if handle is not None:
            log.debug("modem %s disposed, pending retry invalidated", path)
            handle.invalidate()

    def _fire(self, handle: RetryHandle) -> None:
        handle._timer = None

        if self._pending.get(handle.path) is handle:
            del self._pending[handle.path]

        modem = handle.modem
        if handle.invalidated or modem is None:
            log.debug("modem %s gone, dropping stale retry", handle.path)
            return

        try:
            handle._action(modem)
        except Exception:
            log.exception("Error retrying modem %s", handle.path)

    def pending(self, path: str) -> Optional[RetryHandle]:
        """Get the pending retry for ``path``."""
        return self._pending.get(path)

    @property
    def pending_count(self) -> int:
        """Number of outstanding retries."""
        return len(self._pending)

    def close(self) -> None:
        """Cancel all outstanding retries."""
        for handle in self._pending.values():
            handle.cancel()
        self._pending.clear()

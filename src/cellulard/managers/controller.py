"""Modem Controller.

This module drives each modem towards the power and connectivity state
implied by the current operating mode:

    - normal mode: powered and online
    - restricted mode: powered off (offline follows from powering off)

Commands are asynchronous. Each modem has at most one operation in flight;
the code following each ``await`` is the continuation that decides the
next step.

Classes:
    ModemController: Per-modem power/online state machine
"""

import asyncio
import logging
from typing import Any, Coroutine, Optional

from cellulard.context import DaemonContext
from cellulard.exceptions import ModemCommandError
from cellulard.interface import ModemInterface
from cellulard.managers.retry import RetryGuard
from cellulard.types import ModemState

log = logging.getLogger(__name__)


class _Operation:
    """Bookkeeping for the operation in flight on one modem."""

    def __init__(self) -> None:
        self.task: Optional[asyncio.Task] = None
        self.recheck = False
        self.stale = False


class ModemController:
    """Per-modem state machine applying the desired power/online state.

    ``control()`` is idempotent: a converged modem gets no command, and a
    modem with an operation in flight gets no second command. Calls made
    while an operation is in flight are remembered and the modem is
    re-evaluated once the operation ends.

    Example:
        >>> guard = RetryGuard(context)
        >>> controller = ModemController(context, guard)
        >>> controller.control(modem)
    """

    def __init__(self, context: DaemonContext, guard: RetryGuard) -> None:
        """Initialize the controller.

        Args:
            context: Shared daemon context (mode, config, loop).
            guard: Retry guard used for busy power requests.
        """
        self._context = context
        self._guard = guard
        self._operations: dict[str, _Operation] = {}

    # =========================================================================
    # State
    # =========================================================================

    def state_of(self, modem: ModemInterface) -> ModemState:
        """Derive the convergence state of ``modem`` for the current mode."""
        desired = self._context.normal
        if modem.powered != desired:
            return ModemState.POWER_MISMATCH
        if desired and not modem.online:
            return ModemState.AWAITING_ONLINE
        return ModemState.CONVERGED

    def is_busy(self, path: str) -> bool:
        """Whether an operation is in flight for ``path``."""
        return path in self._operations

    # =========================================================================
    # Control
    # =========================================================================

    def control(self, modem: ModemInterface) -> None:
        """Apply the desired power/online state to ``modem``.

        Args:
            modem: A ready modem.
        """
        path = modem.path

        operation = self._operations.get(path)
        if operation is not None:
            log.debug("modem %s busy, re-evaluating once done", path)
            operation.recheck = True
            return

        desired = self._context.normal

        if modem.powered != desired:
            log.info("modem %s power set to %s", path, "on" if desired else "off")
            operation = _Operation()
            self._start(modem, operation, self._apply_power(modem, desired, operation))
        elif desired and not modem.online:
            # Offline is never forced: powering off takes the modem offline.
            operation = _Operation()
            self._start(modem, operation, self._bring_online(modem, operation))
        else:
            log.debug("modem %s already %s", path, ModemState.CONVERGED.value)

    def forget(self, path: str) -> None:
        """Drop bookkeeping for a removed modem.

        An operation still in flight for ``path`` runs to completion but its
        continuation does nothing.
        """
        operation = self._operations.pop(path, None)
        if operation is not None:
            operation.stale = True

    async def close(self) -> None:
        """Cancel every operation in flight."""
        tasks = []
        for operation in self._operations.values():
            operation.stale = True
            if operation.task is not None:
                operation.task.cancel()
                tasks.append(operation.task)
        self._operations.clear()

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # =========================================================================
    # Operations
    # =========================================================================

    def _start(
        self,
        modem: ModemInterface,
        operation: _Operation,
        coro: Coroutine[Any, Any, None],
    ) -> None:
        operation.task = self._context.get_loop().create_task(coro)
        operation.task.add_done_callback(lambda task: self._finished(modem, operation))
        self._operations[modem.path] = operation

    def _finished(self, modem: ModemInterface, operation: _Operation) -> None:
        if self._operations.get(modem.path) is operation:
            del self._operations[modem.path]

        if operation.stale or not operation.recheck:
            return

        try:
            self.control(modem)
        except Exception:
            log.exception("Error re-evaluating modem %s", modem.path)

    async def _apply_power(
        self,
        modem: ModemInterface,
        powered: bool,
        operation: _Operation,
    ) -> None:
        path = modem.path

        try:
            await modem.set_powered(powered)
        except ModemCommandError as e:
            if operation.stale:
                return
            if e.in_progress:
                log.debug("modem %s has operation in progress, retrying...", path)
                # The scheduled retry re-evaluates the modem; no recheck on top of it.
                operation.recheck = False
                self._guard.schedule(modem, self._context.config.retry_delay, self.control)
            else:
                log.error("error setting modem %s power [%s]", path, e.message)
            return
        except Exception as e:
            if not operation.stale:
                log.error("error setting modem %s power [%s]", path, e)
            return

        if operation.stale:
            return

        if powered:
            await self._bring_online(modem, operation)

    async def _bring_online(self, modem: ModemInterface, operation: _Operation) -> None:
        path = modem.path

        if modem.online:
            return

        log.info("modem %s set to online", path)

        # Some modems reject an online request issued right after power-up.
        await asyncio.sleep(self._context.config.settle_delay)

        if operation.stale or not self._context.normal or modem.online:
            return

        try:
            await modem.set_online(True)
        except Exception as e:
            log.debug("modem %s online request failed: %s", path, e)

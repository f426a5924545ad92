"""Core cellulard managers.

Managers:
    - ModeTracker: Current operating mode
    - ManagerWatcher: Modem manager validity and modem add/remove
    - ModemRegistry: Known modems and pending readiness subscriptions
    - ModemController: Per-modem power/online state machine
    - RetryGuard: Deferred retries safe against modem removal
"""

from cellulard.managers.controller import ModemController
from cellulard.managers.mode import ModeTracker
from cellulard.managers.registry import ModemRegistry
from cellulard.managers.retry import RetryGuard, RetryHandle
from cellulard.managers.watcher import ManagerWatcher

__all__ = [
    "ModeTracker",
    "ManagerWatcher",
    "ModemRegistry",
    "ModemController",
    "RetryGuard",
    "RetryHandle",
]

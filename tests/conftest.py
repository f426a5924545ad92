"""
Pytest configuration and fixtures for cellulard tests.

Timing values are shrunk so settle delays and retries complete within a
few event loop iterations.
"""

import pytest

from cellulard.config import ControlConfig
from cellulard.context import DaemonContext
from cellulard.managers import ModemController, ModemRegistry, RetryGuard
from cellulard.types import OperatingMode

from fakes import RETRY_DELAY, SETTLE_DELAY, FakeManager, FakeModem, FakeModeService


@pytest.fixture
def control_config():
    """Controller configuration with short delays."""
    return ControlConfig(settle_delay=SETTLE_DELAY, retry_delay=RETRY_DELAY)


@pytest.fixture
def context(control_config):
    """Daemon context in normal mode. The loop binds on first use."""
    return DaemonContext(config=control_config, mode=OperatingMode.NORMAL)


@pytest.fixture
def guard(context):
    return RetryGuard(context)


@pytest.fixture
def controller(context, guard):
    return ModemController(context, guard)


@pytest.fixture
def modem():
    """A ready modem that is powered off."""
    return FakeModem("/ril_0")


@pytest.fixture
def manager():
    return FakeManager(valid=True)


@pytest.fixture
def registry(context, manager, controller, guard):
    return ModemRegistry(context, manager, controller, guard)


@pytest.fixture
def mode_service():
    return FakeModeService("normal")

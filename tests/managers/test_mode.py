"""Unit tests for the mode tracker."""

from unittest.mock import MagicMock

import pytest

from cellulard.config import ControlConfig
from cellulard.context import DaemonContext
from cellulard.exceptions import ModeQueryError
from cellulard.managers.mode import ModeTracker
from cellulard.types import OperatingMode

from fakes import FakeModeService, drain


@pytest.fixture
def restricted_context():
    return DaemonContext(config=ControlConfig())


class TestOperatingMode:
    """Tests for OperatingMode.from_mode_string."""

    def test_normal(self):
        assert OperatingMode.from_mode_string("normal") is OperatingMode.NORMAL

    def test_flight(self):
        assert OperatingMode.from_mode_string("flight") is OperatingMode.RESTRICTED

    def test_unknown_is_restricted(self):
        """Test any mode other than normal restricts the modems."""
        assert OperatingMode.from_mode_string("offline") is OperatingMode.RESTRICTED
        assert OperatingMode.from_mode_string("") is OperatingMode.RESTRICTED

    def test_custom_normal_mode(self):
        assert OperatingMode.from_mode_string("online", normal_mode="online") is OperatingMode.NORMAL


class TestModeTracker:
    """Tests for ModeTracker class."""

    @pytest.mark.asyncio
    async def test_start_normal(self, restricted_context):
        """Test initial query sets the mode without reconciling."""
        reconcile = MagicMock()
        service = FakeModeService("normal")
        tracker = ModeTracker(restricted_context, service, reconcile)

        await tracker.start()
        await drain()

        assert tracker.current_mode is OperatingMode.NORMAL
        assert restricted_context.normal
        assert service.listeners == 1
        reconcile.assert_not_called()

    @pytest.mark.asyncio
    async def test_start_flight(self, restricted_context):
        tracker = ModeTracker(restricted_context, FakeModeService("flight"), MagicMock())

        await tracker.start()

        assert tracker.current_mode is OperatingMode.RESTRICTED

    @pytest.mark.asyncio
    async def test_start_uses_configured_normal_mode(self):
        context = DaemonContext(config=ControlConfig(normal_mode="online"))
        tracker = ModeTracker(context, FakeModeService("online"), MagicMock())

        await tracker.start()

        assert context.normal

    @pytest.mark.asyncio
    async def test_query_failure_is_fatal(self, restricted_context):
        """Test a failing initial query raises and unsubscribes."""
        service = FakeModeService(error=RuntimeError("no reply"))
        tracker = ModeTracker(restricted_context, service, MagicMock())

        with pytest.raises(ModeQueryError) as exc_info:
            await tracker.start()

        assert "Could not get device mode" in str(exc_info.value)
        assert service.listeners == 0

    @pytest.mark.asyncio
    async def test_query_error_passed_through(self, restricted_context):
        """Test a ModeQueryError from the service is raised unchanged."""
        error = ModeQueryError("get_device_mode() failed")
        tracker = ModeTracker(restricted_context, FakeModeService(error=error), MagicMock())

        with pytest.raises(ModeQueryError) as exc_info:
            await tracker.start()

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_broadcast_updates_mode_and_reconciles(self, restricted_context):
        """Test a broadcast updates the mode and defers a reconciliation."""
        reconcile = MagicMock()
        service = FakeModeService("normal")
        tracker = ModeTracker(restricted_context, service, reconcile)
        await tracker.start()

        service.broadcast("flight")

        assert tracker.current_mode is OperatingMode.RESTRICTED
        reconcile.assert_not_called()

        await drain()
        reconcile.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_unchanged_broadcast_still_reconciles(self, restricted_context):
        """Test a broadcast repeating the current mode triggers a pass too."""
        reconcile = MagicMock()
        service = FakeModeService("normal")
        tracker = ModeTracker(restricted_context, service, reconcile)
        await tracker.start()

        service.broadcast("normal")
        await drain()

        assert tracker.current_mode is OperatingMode.NORMAL
        reconcile.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_stop_unsubscribes(self, restricted_context):
        reconcile = MagicMock()
        service = FakeModeService("normal")
        tracker = ModeTracker(restricted_context, service, reconcile)
        await tracker.start()

        tracker.stop()
        tracker.stop()
        service.broadcast("flight")
        await drain()

        assert service.listeners == 0
        assert tracker.current_mode is OperatingMode.NORMAL
        reconcile.assert_not_called()

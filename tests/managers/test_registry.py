"""Unit tests for the modem registry."""

from unittest.mock import MagicMock

import pytest

from cellulard.managers.registry import ModemRegistry

from fakes import SETTLE_DELAY, FakeManager, FakeModem, drain, in_progress_error


class TestModemAdded:
    """Tests for modem additions."""

    @pytest.mark.asyncio
    async def test_ready_modem_controlled(self, registry, context, modem):
        """Test ready modem is tracked and handed to the controller."""
        registry.on_modem_added(modem)
        await drain(SETTLE_DELAY * 3)

        assert context.modems[modem.path] is modem
        assert registry.get(modem.path) is modem
        assert modem.calls == [("powered", True), ("online", True)]

    @pytest.mark.asyncio
    async def test_not_ready_modem_waits(self, registry):
        """Test modem that is not ready gets one readiness subscription."""
        modem = FakeModem(ready=False)

        registry.on_modem_added(modem)
        await drain(SETTLE_DELAY * 3)

        assert modem.calls == []
        assert registry.pending_paths == [modem.path]
        assert modem.ready_listeners == 1

    @pytest.mark.asyncio
    async def test_single_readiness_subscription(self, registry):
        """Test repeated control of a pending modem does not subscribe again."""
        modem = FakeModem(ready=False)

        registry.control_if_ready(modem)
        registry.control_if_ready(modem)
        registry.control_if_ready(modem)

        assert modem.ready_listeners == 1
        assert len(registry.pending_paths) == 1

    @pytest.mark.asyncio
    async def test_becomes_ready(self, registry):
        """Test readiness drops the subscription and controls the modem."""
        modem = FakeModem(ready=False)
        registry.on_modem_added(modem)

        modem.set_ready(True)
        await drain(SETTLE_DELAY * 3)

        assert modem.ready_listeners == 0
        assert registry.pending_paths == []
        assert modem.calls == [("powered", True), ("online", True)]

    @pytest.mark.asyncio
    async def test_not_ready_notification_keeps_waiting(self, registry):
        """Test a notification still reporting not ready keeps the subscription."""
        modem = FakeModem(ready=False)
        registry.on_modem_added(modem)

        modem.set_ready(False)
        await drain()

        assert modem.ready_listeners == 1
        assert registry.pending_paths == [modem.path]
        assert modem.calls == []

    @pytest.mark.asyncio
    async def test_same_path_replaces_old_modem(self, registry, context):
        """Test a new object at a known path replaces the old one."""
        old = FakeModem("/ril_0", ready=False)
        new = FakeModem("/ril_0", ready=True)

        registry.on_modem_added(old)
        registry.on_modem_added(new)
        await drain(SETTLE_DELAY * 3)

        assert context.modems["/ril_0"] is new
        assert old.ready_listeners == 0
        assert registry.pending_paths == []

        old.set_ready(True)
        await drain(SETTLE_DELAY * 3)

        assert old.calls == []
        assert new.calls == [("powered", True), ("online", True)]


class TestModemRemoved:
    """Tests for modem removals."""

    @pytest.mark.asyncio
    async def test_remove_pending_modem(self, registry, context):
        """Test removal drops the readiness subscription."""
        modem = FakeModem(ready=False)
        registry.on_modem_added(modem)

        registry.on_modem_removed(modem.path)

        assert modem.ready_listeners == 0
        assert registry.pending_paths == []
        assert modem.path not in context.modems

        modem.set_ready(True)
        await drain(SETTLE_DELAY * 3)
        assert modem.calls == []

    @pytest.mark.asyncio
    async def test_late_ready_notification_ignored(self, registry):
        """Test a readiness notification delivered after removal does nothing."""
        modem = FakeModem(ready=False)
        registry.on_modem_added(modem)
        registry.on_modem_removed(modem.path)

        modem._ready = True
        registry._ready_changed(modem)
        await drain(SETTLE_DELAY * 3)

        assert modem.calls == []

    @pytest.mark.asyncio
    async def test_remove_disposes_retry(self, registry, guard, modem):
        """Test removal invalidates a pending busy retry."""
        modem.power_errors.append(in_progress_error())
        registry.on_modem_added(modem)
        await drain()
        handle = guard.pending(modem.path)
        assert handle is not None

        registry.on_modem_removed(modem.path)

        assert handle.invalidated
        assert guard.pending(modem.path) is None

    @pytest.mark.asyncio
    async def test_remove_unknown_path(self, registry):
        """Test removing an unknown modem is harmless."""
        registry.on_modem_removed("/unknown")
        assert registry.known_paths == []

    @pytest.mark.asyncio
    async def test_clear(self, registry, context):
        """Test clear drops every known and pending modem."""
        ready = FakeModem("/ril_0", powered=True, online=True)
        waiting = FakeModem("/ril_1", ready=False)
        registry.on_modem_added(ready)
        registry.on_modem_added(waiting)

        registry.clear()

        assert context.modems == {}
        assert context.pending_readiness == {}
        assert waiting.ready_listeners == 0


class TestReconcile:
    """Tests for reconciliation passes."""

    @pytest.mark.asyncio
    async def test_invalid_manager_skipped(self, context, controller, guard):
        """Test reconcile does nothing while the manager is invalid."""
        modem = FakeModem()
        registry = ModemRegistry(context, FakeManager(valid=False, modems=[modem]), controller, guard)

        registry.reconcile()
        await drain(SETTLE_DELAY * 3)

        assert modem.calls == []
        assert registry.known_paths == []

    @pytest.mark.asyncio
    async def test_all_modems_controlled(self, context, controller, guard):
        """Test reconcile applies control to every modem."""
        modems = [FakeModem("/ril_0"), FakeModem("/ril_1"), FakeModem("/ril_2", ready=False)]
        registry = ModemRegistry(context, FakeManager(modems=modems), controller, guard)

        registry.reconcile()
        await drain(SETTLE_DELAY * 3)

        assert modems[0].calls == [("powered", True), ("online", True)]
        assert modems[1].calls == [("powered", True), ("online", True)]
        assert modems[2].calls == []
        assert registry.pending_paths == ["/ril_2"]
        assert sorted(registry.known_paths) == ["/ril_0", "/ril_1", "/ril_2"]

    @pytest.mark.asyncio
    async def test_reconcile_is_idempotent(self, context, controller, guard):
        """Test repeated passes neither duplicate commands nor subscriptions."""
        ready = FakeModem("/ril_0")
        waiting = FakeModem("/ril_1", ready=False)
        registry = ModemRegistry(context, FakeManager(modems=[ready, waiting]), controller, guard)

        registry.reconcile()
        registry.reconcile()
        await drain(SETTLE_DELAY * 3)
        registry.reconcile()
        await drain(SETTLE_DELAY * 3)

        assert ready.calls == [("powered", True), ("online", True)]
        assert waiting.ready_listeners == 1

    @pytest.mark.asyncio
    async def test_failing_modem_does_not_stop_pass(self, context, guard):
        """Test an error controlling one modem does not skip the rest."""
        modems = [FakeModem("/ril_0"), FakeModem("/ril_1")]
        controller = MagicMock()
        controller.control.side_effect = [RuntimeError("boom"), None]
        registry = ModemRegistry(context, FakeManager(modems=modems), controller, guard)

        registry.reconcile()

        assert controller.control.call_count == 2
        controller.control.assert_called_with(modems[1])

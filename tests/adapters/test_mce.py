"""Unit tests for the MCE mode service adapter."""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from dbus_next import Message, MessageType

from cellulard.adapters.mce import MceModeService
from cellulard.constants import (
    MCE_DEVICE_MODE_GET,
    MCE_DEVICE_MODE_SIG,
    MCE_SERVICE,
    MCE_SIGNAL_IF,
    MCE_SIGNAL_PATH,
)
from cellulard.exceptions import ModeQueryError


def mode_signal(body, member=MCE_DEVICE_MODE_SIG):
    return Message(
        message_type=MessageType.SIGNAL,
        path=MCE_SIGNAL_PATH,
        interface=MCE_SIGNAL_IF,
        member=member,
        signature="s" if body else "",
        body=body,
    )


@pytest.fixture
def bus():
    return MagicMock()


@pytest.fixture
def dbus_calls():
    """Patch the bus helpers used by the adapter."""
    with patch("cellulard.adapters.mce.call_method", new_callable=AsyncMock) as call_method, \
            patch("cellulard.adapters.mce.add_match", new_callable=AsyncMock) as add_match, \
            patch("cellulard.adapters.mce.remove_match", new_callable=AsyncMock) as remove_match:
        yield call_method, add_match, remove_match


class TestMceModeService:
    """Tests for MceModeService class."""

    @pytest.mark.asyncio
    async def test_start_and_close(self, bus, dbus_calls):
        _, add_match, remove_match = dbus_calls
        service = MceModeService(bus)

        await service.start()
        await service.start()

        bus.add_message_handler.assert_called_once_with(service._handle_message)
        add_match.assert_awaited_once()
        rule = add_match.call_args[0][1]
        assert f"member='{MCE_DEVICE_MODE_SIG}'" in rule
        assert f"interface='{MCE_SIGNAL_IF}'" in rule

        await service.close()
        await service.close()

        bus.remove_message_handler.assert_called_once_with(service._handle_message)
        remove_match.assert_awaited_once_with(bus, rule)

    @pytest.mark.asyncio
    async def test_get_mode(self, bus, dbus_calls):
        call_method, _, _ = dbus_calls
        call_method.return_value = ["flight"]

        assert await MceModeService(bus).get_mode() == "flight"
        args = call_method.call_args[0]
        assert args[1] == MCE_SERVICE
        assert args[4] == MCE_DEVICE_MODE_GET

    @pytest.mark.asyncio
    async def test_get_mode_call_failure(self, bus, dbus_calls):
        call_method, _, _ = dbus_calls
        call_method.side_effect = OSError("service unknown")

        with pytest.raises(ModeQueryError, match="get_device_mode"):
            await MceModeService(bus).get_mode()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [[], [42]])
    async def test_get_mode_bad_reply(self, bus, dbus_calls, body):
        call_method, _, _ = dbus_calls
        call_method.return_value = body

        with pytest.raises(ModeQueryError, match="Unexpected device mode payload"):
            await MceModeService(bus).get_mode()

    def test_mode_signal_emitted(self, bus):
        service = MceModeService(bus)
        callback = MagicMock()
        service.on_mode_changed(callback)

        service._handle_message(mode_signal(["flight"]))

        callback.assert_called_once_with("flight")

    def test_unrelated_signal_ignored(self, bus):
        service = MceModeService(bus)
        callback = MagicMock()
        service.on_mode_changed(callback)

        service._handle_message(mode_signal(["on"], member="sig_call_state_ind"))

        callback.assert_not_called()

    def test_malformed_signal_ignored(self, bus, caplog):
        service = MceModeService(bus)
        callback = MagicMock()
        service.on_mode_changed(callback)

        with caplog.at_level(logging.WARNING, logger="cellulard"):
            service._handle_message(mode_signal([]))

        callback.assert_not_called()
        assert "Ignoring malformed" in caplog.text

    def test_unsubscribe(self, bus):
        service = MceModeService(bus)
        callback = MagicMock()
        unsubscribe = service.on_mode_changed(callback)

        unsubscribe()
        service._handle_message(mode_signal(["normal"]))

        callback.assert_not_called()

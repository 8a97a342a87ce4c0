# Invocation → bus call translation and the dual callback/await delivery.
import threading
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import error_reply, method_return, sent_message
from omxplayer_dbus.lib.bridge import (
    DBUS_INTERFACE_PLAYER,
    DBUS_PATH,
    Invocation,
)
from omxplayer_dbus.lib.errors import (
    BusInvocationError,
    BusUnavailable,
    NotRunning,
    ProcessLookupFailure,
)
from omxplayer_dbus.player import OmxPlayer


@pytest.mark.asyncio
async def test_invoke_addresses_this_instance(player, bus):
    bus.call.return_value = method_return(True)
    cb = MagicMock()

    result = await player.invoke(
        Invocation("SelectAudio", DBUS_INTERFACE_PLAYER, "x", [1]), callback=cb)

    assert result is True
    cb.assert_called_once_with(None, True)
    msg = sent_message(bus)
    assert msg.destination == player.dbus_name
    assert msg.path == DBUS_PATH
    assert msg.interface == DBUS_INTERFACE_PLAYER
    assert msg.member == "SelectAudio"
    assert msg.signature == "x"
    assert msg.body == [1]


@pytest.mark.asyncio
async def test_invoke_without_arguments(player, bus):
    await player.invoke(Invocation("Pause", DBUS_INTERFACE_PLAYER))
    msg = sent_message(bus)
    assert msg.signature == ""
    assert msg.body == []


@pytest.mark.asyncio
async def test_callback_gets_every_reply_value(player, bus):
    bus.call.return_value = method_return("a", "b")
    cb = MagicMock()
    result = await player.invoke(Invocation("ListAudio", DBUS_INTERFACE_PLAYER), cb)
    assert result == "a"
    cb.assert_called_once_with(None, "a", "b")


@pytest.mark.asyncio
async def test_error_reply_reaches_both_channels(player, bus):
    bus.call.return_value = error_reply("org.freedesktop.DBus.Error.UnknownMethod", "no such method")
    cb = MagicMock()

    with pytest.raises(BusInvocationError) as excinfo:
        await player.invoke(Invocation("Nope", DBUS_INTERFACE_PLAYER), cb)

    assert excinfo.value.error_name == "org.freedesktop.DBus.Error.UnknownMethod"
    assert excinfo.value.detail == "no such method"
    cb.assert_called_once_with(excinfo.value)


@pytest.mark.asyncio
async def test_invoke_when_not_running(bus):
    player = OmxPlayer()
    cb = MagicMock()
    with pytest.raises(NotRunning):
        await player.invoke(Invocation("Pause", DBUS_INTERFACE_PLAYER), cb)
    assert isinstance(cb.call_args.args[0], NotRunning)
    bus.connect.assert_not_awaited()


@pytest.mark.asyncio
async def test_lookup_failure_short_circuits(player, lookup, bus):
    lookup.side_effect = ProcessLookupFailure()
    with pytest.raises(ProcessLookupFailure):
        await player.get_identity()
    bus.connect.assert_not_awaited()
    bus.call.assert_not_awaited()


@pytest.mark.asyncio
async def test_falsy_connection_is_dbus_not_initialized(player, bus):
    bus.connect.return_value = None
    with pytest.raises(BusUnavailable, match="dbus not initialized"):
        await player.get_identity()


@pytest.mark.asyncio
async def test_transport_errors_propagate_untouched(player, bus):
    boom = ConnectionResetError("bus went away")
    bus.call.side_effect = boom
    cb = MagicMock()
    with pytest.raises(ConnectionResetError) as excinfo:
        await player.get_identity(callback=cb)
    assert excinfo.value is boom
    cb.assert_called_once_with(boom)


@pytest.mark.asyncio
async def test_connection_is_reused(player, bus):
    await player.get_identity()
    await player.get_can_seek()
    bus.connect.assert_awaited_once()


@pytest.mark.asyncio
async def test_empty_bus_file_rejects_metadata(spawned, lookup, terminate, mocker, tmp_path):
    empty = tmp_path / "omxplayerdbus.pi"
    empty.write_text("")
    mocker.patch("omxplayer_dbus.lib.bridge.address_file", return_value=str(empty))
    connect = mocker.patch("omxplayer_dbus.lib.bridge.connect_bus", new=AsyncMock())
    player = OmxPlayer()
    await player.open("/media/test.mp4")
    cb = MagicMock()

    with pytest.raises(BusUnavailable, match="no data in dbus file"):
        await player.get_metadata(callback=cb)

    # the worker lookup still ran first
    lookup.assert_awaited_once()
    connect.assert_not_awaited()
    assert isinstance(cb.call_args.args[0], BusUnavailable)


@pytest.mark.asyncio
async def test_bus_address_is_read_off_the_event_loop(player, bus, mocker):
    threads = []

    def read(path):
        threads.append(threading.get_ident())
        return "unix:abstract=/tmp/dbus-omxtest"

    mocker.patch("omxplayer_dbus.lib.bridge.read_bus_address", side_effect=read)

    await player.get_metadata()

    assert len(threads) == 1
    assert threads[0] != threading.get_ident()

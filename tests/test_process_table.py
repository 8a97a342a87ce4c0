# Worker lookup must find exactly one omxplayer.bin child.
import signal
from types import SimpleNamespace

import psutil
import pytest

from omxplayer_dbus.lib import process_table
from omxplayer_dbus.lib.errors import ProcessLookupFailure


def proc(pid, name, ppid):
    return SimpleNamespace(info={"pid": pid, "name": name, "ppid": ppid})


class Vanished:
    @property
    def info(self):
        raise psutil.NoSuchProcess(4)


@pytest.mark.asyncio
async def test_single_matching_child(mocker):
    mocker.patch.object(process_table.psutil, "process_iter", return_value=[
        proc(1, "systemd", 0),
        proc(500, "omxplayer", 1),
        Vanished(),
        proc(501, "omxplayer.bin", 500),
        proc(601, "omxplayer.bin", 600),  # another instance's worker
    ])
    assert await process_table.find_worker_pid(500) == 501


@pytest.mark.asyncio
async def test_no_match_is_an_error(mocker):
    mocker.patch.object(process_table.psutil, "process_iter", return_value=[
        proc(500, "omxplayer", 1),
    ])
    with pytest.raises(ProcessLookupFailure, match="no matching process found"):
        await process_table.find_worker_pid(500)


@pytest.mark.asyncio
async def test_several_matches_is_an_error(mocker):
    mocker.patch.object(process_table.psutil, "process_iter", return_value=[
        proc(501, "omxplayer.bin", 500),
        proc(502, "omxplayer.bin", 500),
    ])
    with pytest.raises(ProcessLookupFailure):
        await process_table.find_worker_pid(500)


@pytest.mark.asyncio
async def test_terminate_sends_sigterm(mocker):
    fake_cls = mocker.patch.object(process_table.psutil, "Process")
    await process_table.terminate_pid(501)
    fake_cls.assert_called_once_with(501)
    fake_cls.return_value.send_signal.assert_called_once_with(signal.SIGTERM)

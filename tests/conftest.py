# tests/conftest.py
#
# Nothing here touches a real omxplayer, process table or D-Bus daemon:
# process spawning, the worker lookup, signalling and the bus are all faked.
import asyncio
import os
import sys
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from dbus_fast import MessageType

# path to the repo root (one level up from tests/)
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# ensure repo root is importable when the package isn't installed
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from omxplayer_dbus.player import OmxPlayer  # noqa: E402


class FakeStream:
    def __init__(self, chunks=()):
        self._chunks = list(chunks)

    async def read(self, n=-1):
        if self._chunks:
            return self._chunks.pop(0)
        return b""


class FakeProcess:
    """Stands in for asyncio.subprocess.Process; exits when told to."""

    def __init__(self, pid, stdout=(), stderr=()):
        self.pid = pid
        self.stdout = FakeStream(stdout)
        self.stderr = FakeStream(stderr)
        self.returncode = None
        self.terminated = False
        self._exited = asyncio.Event()

    async def wait(self):
        await self._exited.wait()
        return self.returncode

    def exit(self, code=0):
        self.returncode = code
        self._exited.set()

    def terminate(self):
        self.terminated = True
        self.exit(-15)


def method_return(*body):
    return SimpleNamespace(message_type=MessageType.METHOD_RETURN, body=list(body), error_name=None)


def error_reply(name, text=""):
    return SimpleNamespace(message_type=MessageType.ERROR, body=[text] if text else [], error_name=name)


async def settle(rounds=5):
    """Let background watcher tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class SpawnLog(list):
    """FakeProcess objects in spawn order; ``.spawn`` is the patched create_subprocess_exec."""
    spawn = None


@pytest.fixture
def spawned(mocker):
    procs = SpawnLog()

    async def fake_exec(*args, **kwargs):
        # a real spawn suspends before the process exists
        await asyncio.sleep(0)
        proc = FakeProcess(pid=1000 + 10 * len(procs))
        procs.append(proc)
        return proc

    procs.spawn = mocker.patch("asyncio.create_subprocess_exec",
                               new=AsyncMock(side_effect=fake_exec))
    yield procs
    for proc in procs:
        if proc.returncode is None:
            proc.exit(0)


@pytest.fixture
def lookup(mocker):
    """Worker lookup: omxplayer.bin is always wrapper pid + 1."""
    return mocker.patch("omxplayer_dbus.lib.supervisor.find_worker_pid",
                        new=AsyncMock(side_effect=lambda ppid: ppid + 1))


@pytest.fixture
def terminate(mocker, spawned):
    """SIGTERM to a worker makes its fake wrapper exit."""
    async def kill(pid):
        for proc in spawned:
            if proc.pid + 1 == pid:
                proc.exit(-15)

    return mocker.patch("omxplayer_dbus.lib.supervisor.terminate_pid",
                        new=AsyncMock(side_effect=kill))


class FakeBus:
    def __init__(self):
        self.call = AsyncMock(return_value=method_return())
        self.disconnect = MagicMock()
        self.connect = None


@pytest.fixture
def bus(mocker):
    fake = FakeBus()
    mocker.patch("omxplayer_dbus.lib.bridge.read_bus_address",
                 return_value="unix:abstract=/tmp/dbus-omxtest")
    fake.connect = mocker.patch("omxplayer_dbus.lib.bridge.connect_bus",
                                new=AsyncMock(return_value=fake))
    return fake


@pytest_asyncio.fixture
async def player(spawned, lookup, terminate, bus):
    p = OmxPlayer()
    await p.open("/media/test.mp4")
    return p


def sent_message(bus, index=-1):
    """The dbus_fast Message passed to bus.call()."""
    return bus.call.await_args_list[index].args[0]

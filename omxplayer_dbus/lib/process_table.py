# omxplayer-dbus
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Process table queries for the omxplayer worker.

``omxplayer`` is a shell wrapper: the process we spawn execs/forks
``omxplayer.bin``, and that child is the one that owns the D-Bus name and
must receive signals.  psutil scans are blocking, so they run in the default
thread pool.
"""

import asyncio
import logging
import signal

import psutil

from .config import cfg
from .errors import ProcessLookupFailure

log = logging.getLogger(__name__)

WORKER_NAME = cfg("omxplayer", "worker_name", default="omxplayer.bin")


def _scan(parent_pid: int, name: str) -> list[int]:
    matches = []
    for proc in psutil.process_iter(["pid", "name", "ppid"]):
        try:
            info = proc.info
            if info["name"] == name and info["ppid"] == parent_pid:
                matches.append(info["pid"])
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    return matches


async def find_worker_pid(parent_pid: int, name: str = WORKER_NAME) -> int:
    """Return the pid of the single *name* process whose parent is *parent_pid*.

    Zero or several matches is an error; we never guess which one owns the bus.
    """
    loop = asyncio.get_running_loop()
    matches = await loop.run_in_executor(None, _scan, parent_pid, name)
    if len(matches) != 1:
        log.debug("Worker lookup for ppid %d found %d %s processes",
                  parent_pid, len(matches), name)
        raise ProcessLookupFailure()
    return matches[0]


async def terminate_pid(pid: int):
    """Send SIGTERM to *pid*.  psutil.NoSuchProcess propagates to the caller."""
    loop = asyncio.get_running_loop()
    proc = psutil.Process(pid)
    await loop.run_in_executor(None, proc.send_signal, signal.SIGTERM)
    log.info("Sent SIGTERM to omxplayer worker %d", pid)

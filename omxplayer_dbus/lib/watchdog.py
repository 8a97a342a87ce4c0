"""systemd notify support for the omxplayer control service.

The unit runs as Type=notify with WatchdogSec set: READY=1 goes out once the
HTTP side is listening, WATCHDOG=1 every ``service.watchdog_interval``
seconds after that, and STOPPING=1 when shutdown begins so systemd does not
count the time spent killing omxplayer against the watchdog.

Without NOTIFY_SOCKET (dev runs, tests) every call is a no-op.
"""

import asyncio
import logging
import os
import socket

from .config import cfg

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 20


def sd_notify(msg: str) -> bool:
    """Send *msg* to the notify socket.  Returns False when there is none."""
    addr = os.environ.get("NOTIFY_SOCKET")
    if not addr:
        return False
    if addr[0] == "@":
        addr = "\0" + addr[1:]
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM)
    try:
        sock.sendto(msg.encode(), addr)
    finally:
        sock.close()
    return True


def notify_stopping():
    sd_notify("STOPPING=1")


async def watchdog_loop(interval: int | None = None):
    """READY=1, then WATCHDOG=1 every *interval* seconds until cancelled."""
    if interval is None:
        interval = cfg("service", "watchdog_interval", default=DEFAULT_INTERVAL)
    if not sd_notify("READY=1"):
        logger.debug("No NOTIFY_SOCKET, watchdog heartbeats are no-ops")
    logger.info("Watchdog started (interval=%ds)", interval)
    while True:
        sd_notify("WATCHDOG=1")
        await asyncio.sleep(interval)

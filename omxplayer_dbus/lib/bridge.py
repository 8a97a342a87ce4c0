# omxplayer-dbus
# SPDX-License-Identifier: GPL-3.0-or-later

"""
DBusPlayer — turns typed invocations into D-Bus method calls on omxplayer.

Each call goes: worker pid (must be running) → cached bus connection (read
the address file and connect on first use) → ``bus.call()`` addressed to
this instance's service name → unwrap the reply body.  Unit conversion is
left to the call sites in ``player.py``.

Concurrent invocations are not serialized; their replies come back in
whatever order the bus delivers them.
"""

import asyncio
import logging
from dataclasses import dataclass

from dbus_fast import Message, MessageType

from .bus import address_file, close_bus, connect_bus, read_bus_address, unwrap
from .errors import BusInvocationError, BusUnavailable, NotRunning
from .supervisor import PlayerProcess

log = logging.getLogger(__name__)

DBUS_PATH = "/org/mpris/MediaPlayer2"
DBUS_INTERFACE_PROPERTIES = "org.freedesktop.DBus.Properties"
DBUS_INTERFACE_ROOT = "org.mpris.MediaPlayer2"
DBUS_INTERFACE_PLAYER = "org.mpris.MediaPlayer2.Player"


@dataclass
class Invocation:
    """One D-Bus call: member on interface, with optional signature and arguments."""
    member: str
    interface: str
    signature: str | None = None
    body: list | None = None


class DBusPlayer(PlayerProcess):

    async def invoke(self, request: Invocation, callback=None):
        """Run *request* against this instance's player.

        Returns the first reply value (or None).  ``callback`` receives
        ``(None, *values)`` on success or ``(exc,)`` on failure; failures are
        re-raised unchanged after the callback has run.
        """
        try:
            await self.get_child_pid()
            bus = await self._get_bus()
            if not bus:
                raise BusUnavailable("dbus not initialized")
            reply = await bus.call(Message(
                destination=self.dbus_name,
                path=DBUS_PATH,
                interface=request.interface,
                member=request.member,
                signature=request.signature or "",
                body=list(request.body or []),
            ))
            if reply is None:
                results = []
            elif reply.message_type == MessageType.ERROR:
                detail = reply.body[0] if reply.body else ""
                raise BusInvocationError(reply.error_name, detail)
            else:
                results = unwrap(list(reply.body))
        except Exception as e:
            log.debug("%s.%s failed on instance %d: %s",
                      request.interface, request.member, self.instance, e)
            if callback is not None:
                callback(e)
            raise

        if callback is not None:
            callback(None, *results)
        return results[0] if results else None

    async def _get_bus(self):
        if self._bus:
            return self._bus
        proc = self.process
        loop = asyncio.get_running_loop()
        address = await loop.run_in_executor(None, read_bus_address, address_file())
        bus = await connect_bus(address)
        if self.process is not proc:
            # Process went away while connecting; never cache a stale bus
            close_bus(bus)
            raise NotRunning()
        if self._bus:
            # Lost a race with a concurrent invocation; keep the first connection
            close_bus(bus)
            return self._bus
        self._bus = bus
        return bus

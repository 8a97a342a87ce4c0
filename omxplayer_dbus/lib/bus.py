"""
Locating and connecting to omxplayer's private D-Bus.

omxplayer starts its own session bus and writes the address into
/tmp/omxplayerdbus.<user>.  The address is read once per connection
lifetime; the connection itself is cached on the player by the bridge.
"""

import getpass
import logging

from dbus_fast import Variant
from dbus_fast.aio import MessageBus

from .config import cfg
from .errors import BusUnavailable

log = logging.getLogger(__name__)

ADDRESS_FILE_TEMPLATE = cfg("omxplayer", "address_file", default="/tmp/omxplayerdbus.{user}")


def address_file(user: str | None = None) -> str:
    """Path of the bus address marker for *user* (default: the invoking user)."""
    return ADDRESS_FILE_TEMPLATE.format(user=user or getpass.getuser())


def read_bus_address(path: str) -> str:
    try:
        with open(path) as f:
            data = f.read()
    except OSError as e:
        raise BusUnavailable(f"cannot read dbus file {path}: {e}") from e
    address = data.strip()
    if not address:
        raise BusUnavailable("no data in dbus file")
    return address


async def connect_bus(address: str) -> MessageBus:
    bus = await MessageBus(bus_address=address).connect()
    log.info("Connected to omxplayer bus %s", address)
    return bus


def close_bus(bus):
    if bus is None:
        return
    try:
        bus.disconnect()
    except Exception as e:
        log.debug("Ignoring error while disconnecting bus: %s", e)


def unwrap(value):
    """Strip dbus Variant wrappers, recursing into containers (e.g. Metadata a{sv})."""
    if isinstance(value, Variant):
        return unwrap(value.value)
    if isinstance(value, dict):
        return {k: unwrap(v) for k, v in value.items()}
    if isinstance(value, list):
        return [unwrap(v) for v in value]
    if isinstance(value, tuple):
        return tuple(unwrap(v) for v in value)
    return value

"""
omxplayer-dbus — drive omxplayer processes over their private D-Bus.

    from omxplayer_dbus import OmxPlayer

OmxPlayer spawns and supervises one omxplayer process and exposes its MPRIS
methods and properties as coroutines.  service.py wraps a player in a small
aiohttp control service (``python3 -m omxplayer_dbus``).
"""

from .lib.errors import (
    BusInvocationError,
    BusUnavailable,
    InvalidResult,
    NotRunning,
    OmxPlayerError,
    ProcessLookupFailure,
)
from .player import OmxPlayer

__all__ = [
    "OmxPlayer",
    "OmxPlayerError",
    "NotRunning",
    "ProcessLookupFailure",
    "BusUnavailable",
    "BusInvocationError",
    "InvalidResult",
]

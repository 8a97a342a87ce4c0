# omxplayer-dbus
# SPDX-License-Identifier: GPL-3.0-or-later

"""Error types raised (and passed to callbacks) by the player control layer."""


class OmxPlayerError(Exception):
    """Base class for every failure the control layer reports itself."""


class NotRunning(OmxPlayerError):
    """The operation needs a live omxplayer process but none is recorded."""

    def __init__(self, message="Not running"):
        super().__init__(message)


class ProcessLookupFailure(OmxPlayerError):
    """The process table had zero or several omxplayer.bin children."""

    def __init__(self, message="no matching process found"):
        super().__init__(message)


class BusUnavailable(OmxPlayerError):
    """The D-Bus address file is unreadable or empty, or no bus connection exists."""


class BusInvocationError(OmxPlayerError):
    """The player answered a method call with a D-Bus error reply."""

    def __init__(self, error_name: str, detail: str = ""):
        self.error_name = error_name
        self.detail = detail
        super().__init__(f"{error_name}: {detail}" if detail else error_name)


class InvalidResult(OmxPlayerError):
    """A seek or position request was rejected (the player replied with nothing)."""

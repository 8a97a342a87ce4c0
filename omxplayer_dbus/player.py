# omxplayer-dbus
# SPDX-License-Identifier: GPL-3.0-or-later

"""
OmxPlayer — the control surface for one omxplayer instance.

Usage:

    player = OmxPlayer()
    player.on("close", lambda code: print("exited", code))
    await player.open("/media/clip.mp4", {"o": "hdmi", "loop": True, "vol": -600})
    await player.seek(10)
    print(await player.get_position())
    await player.kill()

Every operation is a coroutine and also accepts an error-first
``callback=``.  Times are in seconds on this side and microseconds on the
bus.  See https://github.com/popcornmix/omxplayer#dbus-control for the
underlying methods.
"""

import logging
import math

from .lib.bridge import (
    DBUS_INTERFACE_PLAYER,
    DBUS_INTERFACE_PROPERTIES,
    DBUS_INTERFACE_ROOT,
    DBusPlayer,
    Invocation,
)
from .lib.callbacks import deliver
from .lib.errors import InvalidResult

log = logging.getLogger(__name__)

US_PER_SECOND = 1_000_000

# First object-path argument omxplayer expects (and ignores) on some methods
UNUSED_PATH = "/not/used"

# omxplayer KeyConfig.h action codes
ACTION_TOGGLE_SUBTITLE = 12
ACTION_DECREASE_VOLUME = 17
ACTION_INCREASE_VOLUME = 18
ACTION_HIDE_VIDEO = 28
ACTION_UNHIDE_VIDEO = 29

PLAYING = "Playing"
PAUSED = "Paused"


def seconds_to_us(seconds) -> int:
    return int(round(seconds * US_PER_SECOND))


def us_to_seconds(us):
    return us / US_PER_SECOND


def millibels_to_volume(mb: float) -> float:
    """omxplayer volume (linear) for a gain in millibels."""
    return math.pow(10, mb / 2000.0)


def volume_to_millibels(volume: float) -> float:
    return 2000.0 * math.log10(volume)


def parse_geometry(result: str) -> list[int]:
    """'0 0 1920 1080' → [0, 0, 1920, 1080]"""
    return [int(part) for part in result.split()]


class OmxPlayer(DBusPlayer):

    # ── Lifecycle ──

    async def open(self, file: str, options: dict | None = None, callback=None):
        """(Re)start omxplayer on *file*.  Any running process is stopped first."""
        await self.start_process(file, options, callback)

    async def kill(self, callback=None):
        """Terminate the worker process.  Always succeeds (best-effort)."""
        await self.stop_process(callback)

    # ── Invocation helpers ──

    async def _get(self, prop: str, callback=None):
        return await self.invoke(Invocation(prop, DBUS_INTERFACE_PROPERTIES), callback)

    async def _set(self, prop: str, signature: str, value, callback=None):
        return await self.invoke(
            Invocation(prop, DBUS_INTERFACE_PROPERTIES, signature, [value]), callback)

    async def _root(self, member: str, callback=None):
        return await self.invoke(Invocation(member, DBUS_INTERFACE_ROOT), callback)

    async def _player(self, member: str, signature=None, body=None, callback=None):
        return await self.invoke(
            Invocation(member, DBUS_INTERFACE_PLAYER, signature, body), callback)

    # ── Root interface / methods ──

    async def quit(self, callback=None):
        """Stop playback; the omxplayer process terminates."""
        return await self._root("Quit", callback)

    async def raise_(self, callback=None):
        """No visible effect on omxplayer."""
        return await self._root("Raise", callback)

    # ── Root interface / properties ──

    async def get_can_quit(self, callback=None) -> bool:
        return await self._get("CanQuit", callback)

    async def get_fullscreen(self, callback=None) -> bool:
        return await self._get("Fullscreen", callback)

    async def get_can_set_fullscreen(self, callback=None) -> bool:
        return await self._get("CanSetFullscreen", callback)

    async def get_can_raise(self, callback=None) -> bool:
        return await self._get("CanRaise", callback)

    async def get_has_track_list(self, callback=None) -> bool:
        return await self._get("HasTrackList", callback)

    async def get_identity(self, callback=None) -> str:
        return await self._get("Identity", callback)

    async def get_supported_uri_schemes(self, callback=None) -> list:
        return await self._get("SupportedUriSchemes", callback)

    async def get_supported_mime_types(self, callback=None) -> list:
        # Not implemented by omxplayer itself; usually an empty list
        return await self._get("SupportedMimeTypes", callback)

    # ── Player interface / methods ──

    async def next(self, callback=None):
        """Skip to the next chapter."""
        return await self._player("Next", callback=callback)

    async def previous(self, callback=None):
        """Skip to the previous chapter."""
        return await self._player("Previous", callback=callback)

    async def play(self, callback=None):
        """Resume playback if paused; no-op when already playing.

        omxplayer's own Play method is unreliable, so this checks the status
        and sends PlayPause only when needed.
        """
        try:
            playing = await self.get_playing()
        except Exception as e:
            if callback is not None:
                callback(e)
            raise
        if playing:
            if callback is not None:
                callback(None)
            return None
        return await self.play_pause(callback)

    async def pause(self, callback=None):
        return await self._player("Pause", callback=callback)

    async def play_pause(self, callback=None):
        return await self._player("PlayPause", callback=callback)

    async def stop(self, callback=None):
        """Player.Stop — same effect as quit (the process terminates)."""
        return await self._player("Stop", callback=callback)

    async def seek(self, seconds: float, callback=None) -> float:
        """Relative seek by *seconds*.  Returns the applied offset in seconds.

        Raises InvalidResult when omxplayer rejects the offset.
        """
        return await deliver(self._seek_us("Seek", "x", [seconds_to_us(seconds)]), callback)

    async def set_position(self, seconds: float, callback=None) -> float:
        """Absolute seek.  Returns the new position in seconds."""
        return await deliver(
            self._seek_us("SetPosition", "ox", [UNUSED_PATH, seconds_to_us(seconds)]), callback)

    async def _seek_us(self, member: str, signature: str, body: list) -> float:
        result = await self._player(member, signature, body)
        if result is None:
            raise InvalidResult(f"{member} rejected by omxplayer")
        return us_to_seconds(result)

    async def set_alpha(self, alpha: int, callback=None):
        """Layer transparency, 0-255."""
        return await self._player("SetAlpha", "ox", [UNUSED_PATH, int(alpha)], callback)

    async def set_layer(self, layer: int, callback=None):
        return await self._player("SetLayer", "ox", [UNUSED_PATH, int(layer)], callback)

    async def mute(self, callback=None):
        return await self._player("Mute", callback=callback)

    async def unmute(self, callback=None):
        return await self._player("Unmute", callback=callback)

    async def list_subtitles(self, callback=None) -> list:
        return await self._player("ListSubtitles", callback=callback)

    async def list_audio(self, callback=None) -> list:
        return await self._player("ListAudio", callback=callback)

    async def list_video(self, callback=None) -> list:
        return await self._player("ListVideo", callback=callback)

    async def select_subtitle(self, index: int, callback=None) -> bool:
        return await self._player("SelectSubtitle", "x", [int(index)], callback)

    async def select_audio(self, index: int, callback=None) -> bool:
        return await self._player("SelectAudio", "x", [int(index)], callback)

    async def show_subtitles(self, callback=None):
        return await self._player("ShowSubtitles", callback=callback)

    async def hide_subtitles(self, callback=None):
        return await self._player("HideSubtitles", callback=callback)

    async def get_source(self, callback=None) -> str:
        """File or stream currently playing."""
        return await self._player("GetSource", callback=callback)

    async def action(self, code: int, callback=None):
        """Send a keyboard action (KeyConfig.h code)."""
        return await self._player("Action", "i", [int(code)], callback)

    async def set_video_pos(self, x1: int, y1: int, x2: int, y2: int, callback=None) -> list[int]:
        """Move the video window (like --win).  Returns [x1, y1, x2, y2]."""
        return await deliver(self._geometry("VideoPos", x1, y1, x2, y2), callback)

    async def set_video_crop_pos(self, x1: int, y1: int, x2: int, y2: int, callback=None) -> list[int]:
        """Crop the source video (like --crop).  Returns [x1, y1, x2, y2]."""
        return await deliver(self._geometry("SetVideoCropPos", x1, y1, x2, y2), callback)

    async def _geometry(self, member: str, x1, y1, x2, y2) -> list[int]:
        result = await self._player(member, "os", [UNUSED_PATH, f"{x1} {y1} {x2} {y2}"])
        if not result:
            raise InvalidResult(f"{member} rejected by omxplayer")
        return parse_geometry(result)

    async def set_aspect_mode(self, mode: str, callback=None):
        """letterbox, fill or stretch."""
        return await self._player("SetAspectMode", "os", [UNUSED_PATH, mode], callback)

    # ── Player interface / properties ──

    async def get_can_go_next(self, callback=None) -> bool:
        return await self._get("CanGoNext", callback)

    async def get_can_go_previous(self, callback=None) -> bool:
        return await self._get("CanGoPrevious", callback)

    async def get_can_seek(self, callback=None) -> bool:
        return await self._get("CanSeek", callback)

    async def get_can_control(self, callback=None) -> bool:
        return await self._get("CanControl", callback)

    async def get_can_play(self, callback=None) -> bool:
        return await self._get("CanPlay", callback)

    async def get_can_pause(self, callback=None) -> bool:
        return await self._get("CanPause", callback)

    async def get_playback_status(self, callback=None) -> str:
        """Either "Playing" or "Paused"."""
        return await self._get("PlaybackStatus", callback)

    async def get_volume(self, callback=None) -> float:
        """Linear volume; see millibels_to_volume() for the --vol relation."""
        return await self._get("Volume", callback)

    async def set_volume(self, volume: float, callback=None) -> float:
        return await self._set("Volume", "d", float(volume), callback)

    async def open_uri(self, uri: str, callback=None):
        """Restart playback on another URI."""
        return await self._set("OpenUri", "s", uri, callback)

    async def get_position(self, callback=None) -> float:
        """Current position in seconds."""
        return await deliver(self._get_seconds("Position"), callback)

    async def get_duration(self, callback=None) -> float:
        """Total length in seconds."""
        return await deliver(self._get_seconds("Duration"), callback)

    async def _get_seconds(self, prop: str) -> float:
        return us_to_seconds(await self._get(prop))

    async def get_minimum_rate(self, callback=None) -> float:
        return await self._get("MinimumRate", callback)

    async def get_maximum_rate(self, callback=None) -> float:
        return await self._get("MaximumRate", callback)

    async def get_rate(self, callback=None) -> float:
        return await self._get("Rate", callback)

    async def set_rate(self, rate: float, callback=None) -> float:
        return await self._set("Rate", "d", float(rate), callback)

    async def get_metadata(self, callback=None) -> dict:
        """Track URI and length (mpris:length is in microseconds)."""
        return await self._get("Metadata", callback)

    async def get_aspect(self, callback=None) -> float:
        return await self._get("Aspect", callback)

    async def get_video_stream_count(self, callback=None) -> int:
        return await self._get("VideoStreamCount", callback)

    async def get_res_width(self, callback=None) -> int:
        return await self._get("ResWidth", callback)

    async def get_res_height(self, callback=None) -> int:
        return await self._get("ResHeight", callback)

    # ── Derived helpers ──

    async def get_playing(self, callback=None) -> bool:
        return await deliver(self._status_is(PLAYING), callback)

    async def get_paused(self, callback=None) -> bool:
        return await deliver(self._status_is(PAUSED), callback)

    async def _status_is(self, wanted: str) -> bool:
        return await self.get_playback_status() == wanted

    async def toggle_subtitles(self, callback=None):
        return await self.action(ACTION_TOGGLE_SUBTITLE, callback)

    async def hide_video(self, callback=None):
        return await self.action(ACTION_HIDE_VIDEO, callback)

    async def unhide_video(self, callback=None):
        return await self.action(ACTION_UNHIDE_VIDEO, callback)

    async def volume_up(self, callback=None):
        return await self.action(ACTION_INCREASE_VOLUME, callback)

    async def volume_down(self, callback=None):
        return await self.action(ACTION_DECREASE_VOLUME, callback)

# omxplayer-dbus
# SPDX-License-Identifier: GPL-3.0-or-later

"""
PlayerService — HTTP + WebSocket control for one OmxPlayer.

Endpoints:

    POST /player/open       {"file": ..., "options": {...}}
    POST /player/kill
    POST /player/play | pause | toggle | stop | next | prev
    POST /player/seek       {"seconds": 10}
    POST /player/position   {"seconds": 90}
    POST /player/volume     {"volume": 0.5}
    GET  /player/state      {"state": "playing" | "paused" | "stopped"}
    GET  /player/status
    GET  /ws                pushes player lifecycle events (close, error, stop_error)

Commands answer {"status": "ok", "result": ...} or
{"status": "error", "message": ...}.
"""

import asyncio
import json
import logging
import signal

from aiohttp import web

from .lib.config import cfg
from .lib.watchdog import notify_stopping, watchdog_loop
from .player import PAUSED, PLAYING, OmxPlayer

log = logging.getLogger(__name__)

DEFAULT_PORT = 8780


class PlayerService:

    def __init__(self, player: OmxPlayer | None = None, host: str | None = None,
                 port: int | None = None):
        self.player = player or OmxPlayer()
        self.host = host or cfg("service", "host", default="0.0.0.0")
        self.port = int(port if port is not None else cfg("service", "port", default=DEFAULT_PORT))
        self.default_options: dict = cfg("omxplayer", "options", default={})
        if not isinstance(self.default_options, dict):
            self.default_options = {}
        self._ws_clients: set[web.WebSocketResponse] = set()
        self._runner: web.AppRunner | None = None
        self._watchdog_task: asyncio.Task | None = None

        self.player.on("close", self._on_player_close)
        self.player.on("error", self._on_player_error)
        self.player.on("stop_error", self._on_player_stop_error)

    # ── App ──

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/ws", self._handle_ws)
        app.router.add_post("/player/open", self._handle_open)
        app.router.add_post("/player/kill", self._handle_kill)
        app.router.add_post("/player/play", self._command(lambda: self.player.play()))
        app.router.add_post("/player/pause", self._command(lambda: self.player.pause()))
        app.router.add_post("/player/toggle", self._command(lambda: self.player.play_pause()))
        app.router.add_post("/player/stop", self._command(lambda: self.player.stop()))
        app.router.add_post("/player/next", self._command(lambda: self.player.next()))
        app.router.add_post("/player/prev", self._command(lambda: self.player.previous()))
        app.router.add_post("/player/seek", self._handle_seek)
        app.router.add_post("/player/position", self._handle_position)
        app.router.add_post("/player/volume", self._handle_volume)
        app.router.add_get("/player/state", self._handle_state)
        app.router.add_get("/player/status", self._handle_status)
        return app

    async def start(self):
        """Start listening and the systemd watchdog heartbeat."""
        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        log.info("omxplayer control (instance %d) on %s:%d",
                 self.player.instance, self.host, self.port)
        self._watchdog_task = asyncio.create_task(watchdog_loop())

    async def run(self):
        """Convenience entry-point: start + wait for signal + stop."""
        await self.start()
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, stop_event.set)
        try:
            await stop_event.wait()
        finally:
            await self.shutdown()

    async def shutdown(self):
        notify_stopping()
        await self.player.kill()

        if self._watchdog_task:
            self._watchdog_task.cancel()
            try:
                await self._watchdog_task
            except asyncio.CancelledError:
                pass
            self._watchdog_task = None

        for ws in list(self._ws_clients):
            await ws.close()
        self._ws_clients.clear()
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    # ── Player events → WebSocket ──

    async def broadcast(self, event: str, **data):
        if not self._ws_clients:
            return
        message = json.dumps({"type": "player_event", "event": event, **data})
        disconnected = set()
        for ws in self._ws_clients:
            try:
                await ws.send_str(message)
            except Exception:
                disconnected.add(ws)
        self._ws_clients -= disconnected

    async def _on_player_close(self, code):
        log.info("Player closed (code %s)", code)
        await self.broadcast("close", code=code)

    async def _on_player_error(self, exc):
        log.error("Player error: %s", exc)
        await self.broadcast("error", message=str(exc))

    async def _on_player_stop_error(self, exc):
        await self.broadcast("stop_error", message=str(exc))

    async def _handle_ws(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)

        self._ws_clients.add(ws)
        log.info("WebSocket client connected (%d total)", len(self._ws_clients))
        try:
            await ws.send_json({"type": "player_status", "data": await self.get_status()})
            async for msg in ws:
                pass  # push-only
        finally:
            self._ws_clients.discard(ws)
            log.info("WebSocket client disconnected (%d remaining)", len(self._ws_clients))
        return ws

    # ── HTTP route handlers ──

    def _cors_headers(self):
        return {
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type",
        }

    def _ok(self, result=None) -> web.Response:
        return web.json_response({"status": "ok", "result": result},
                                 headers=self._cors_headers())

    def _error(self, message: str, status: int = 500) -> web.Response:
        return web.json_response({"status": "error", "message": message},
                                 status=status, headers=self._cors_headers())

    async def _json_body(self, request: web.Request) -> dict:
        try:
            data = await request.json()
        except Exception:
            return {}
        return data if isinstance(data, dict) else {}

    async def _run(self, coro) -> web.Response:
        try:
            result = await coro
        except Exception as e:
            log.warning("Player command failed: %s", e)
            return self._error(str(e) or type(e).__name__)
        return self._ok(result)

    def _command(self, call):
        async def handler(request: web.Request) -> web.Response:
            return await self._run(call())
        return handler

    async def _handle_open(self, request: web.Request) -> web.Response:
        data = await self._json_body(request)
        file = data.get("file")
        if not file:
            return self._error("missing 'file'", status=400)
        options = data.get("options")
        if options is None:
            options = self.default_options
        if not isinstance(options, dict):
            return self._error("'options' must be an object", status=400)
        await self.player.open(file, options)
        return self._ok({"instance": self.player.instance, "dbus_name": self.player.dbus_name})

    async def _handle_kill(self, request: web.Request) -> web.Response:
        await self.player.kill()
        return self._ok()

    async def _seconds(self, request: web.Request) -> float | None:
        data = await self._json_body(request)
        try:
            return float(data["seconds"])
        except (KeyError, TypeError, ValueError):
            return None

    async def _handle_seek(self, request: web.Request) -> web.Response:
        seconds = await self._seconds(request)
        if seconds is None:
            return self._error("'seconds' must be a number", status=400)
        return await self._run(self.player.seek(seconds))

    async def _handle_position(self, request: web.Request) -> web.Response:
        seconds = await self._seconds(request)
        if seconds is None:
            return self._error("'seconds' must be a number", status=400)
        return await self._run(self.player.set_position(seconds))

    async def _handle_volume(self, request: web.Request) -> web.Response:
        data = await self._json_body(request)
        try:
            volume = float(data["volume"])
        except (KeyError, TypeError, ValueError):
            return self._error("'volume' must be a number", status=400)
        return await self._run(self.player.set_volume(volume))

    async def _handle_state(self, request: web.Request) -> web.Response:
        return web.json_response({"state": await self.get_state()},
                                 headers=self._cors_headers())

    async def _handle_status(self, request: web.Request) -> web.Response:
        return web.json_response(await self.get_status(), headers=self._cors_headers())

    async def get_state(self) -> str:
        """Return "playing", "paused", or "stopped"."""
        if not self.player.is_running():
            return "stopped"
        try:
            status = await self.player.get_playback_status()
        except Exception as e:
            log.debug("Playback status unavailable: %s", e)
            return "stopped"
        if status == PLAYING:
            return "playing"
        if status == PAUSED:
            return "paused"
        return "stopped"

    async def get_status(self) -> dict:
        status = {
            "player": "omxplayer",
            "instance": self.player.instance,
            "dbus_name": self.player.dbus_name,
            "running": self.player.is_running(),
            "file": self.player.file,
            "ws_clients": len(self._ws_clients),
        }
        if not status["running"]:
            return status
        for key, getter in (("position", self.player.get_position),
                            ("duration", self.player.get_duration),
                            ("volume", self.player.get_volume)):
            try:
                status[key] = await getter()
            except Exception as e:
                log.debug("Status field %s unavailable: %s", key, e)
                status[key] = None
        return status

# omxplayer-dbus
# SPDX-License-Identifier: GPL-3.0-or-later

"""
PlayerProcess — lifecycle of one supervised omxplayer process.

Owns the spawned ``omxplayer`` wrapper, the lazily discovered
``omxplayer.bin`` worker pid and the cached bus connection.  The pid and the
bus are only valid while the wrapper process is recorded; both are dropped
together in ``_clear_state()`` when the process exits or is stopped.

Events (pyee):
    stdout(bytes)      raw chunk from the player's stdout
    stderr(bytes)      raw chunk from the player's stderr
    error(exc)         spawn/runtime failure
    close(code)        process exited on its own (None if it never started)
    stop_error(exc)    best-effort stop hit a lookup/signal failure
"""

import asyncio
import logging
import threading

from pyee.asyncio import AsyncIOEventEmitter

from .bus import close_bus
from .callbacks import deliver
from .config import cfg
from .errors import NotRunning
from .process_table import find_worker_pid, terminate_pid

log = logging.getLogger(__name__)

BINARY = cfg("omxplayer", "binary", default="omxplayer")
DBUS_NAME = cfg("omxplayer", "dbus_name", default="org.mpris.MediaPlayer2.omxplayer")

READ_CHUNK = 4096

_instance_lock = threading.Lock()
_next_instance = 0

# Watchers outlive stop_process() until the old process is reaped
_watchers: set[asyncio.Task] = set()


def allocate_instance() -> int:
    """Hand out the next instance index.  Indices are never reused."""
    global _next_instance
    with _instance_lock:
        instance = _next_instance
        _next_instance += 1
    return instance


def build_args(options: dict | None, dbus_name: str) -> list[str]:
    """Translate launch options into omxplayer arguments.

    ``False`` drops the option, ``True`` emits a bare flag, anything else the
    flag followed by ``str(value)``.  One-letter keys get ``-``, others ``--``.
    The ``--dbus_name`` flag always comes last.
    """
    args = []
    for key, value in (options or {}).items():
        if value is False:
            continue
        args.append(f"{'-' if len(key) == 1 else '--'}{key}")
        if value is True:
            continue
        args.append(str(value))
    args += ["--dbus_name", dbus_name]
    return args


class PlayerProcess(AsyncIOEventEmitter):

    def __init__(self):
        super().__init__()
        self.instance: int = allocate_instance()
        self.dbus_name: str = f"{DBUS_NAME}{self.instance}"
        self.file: str | None = None
        self.options: dict = {}
        self.process: asyncio.subprocess.Process | None = None
        self._worker_pid: int | None = None
        self._bus = None
        self._watch_task: asyncio.Task | None = None
        # Serializes start/stop so one instance never owns two processes
        self._lifecycle_lock = asyncio.Lock()

    def is_running(self) -> bool:
        """True while a wrapper process is recorded (not a health check)."""
        return self.process is not None

    # ── Start / stop ──

    async def start_process(self, file: str, options: dict | None = None, callback=None):
        """Stop any previous process for this instance, then spawn omxplayer on *file*.

        Spawn failures are reported on the ``error`` and ``close`` events, never raised.
        Concurrent starts on one instance run one after the other.
        """
        async with self._lifecycle_lock:
            await self._stop()
            await self._spawn(file, options)

        if callback is not None:
            callback(None)

    async def _spawn(self, file: str, options: dict | None):
        self.file = file
        self.options = dict(options or {})
        args = build_args(self.options, self.dbus_name)
        self._clear_state()

        try:
            proc = await asyncio.create_subprocess_exec(
                BINARY, *args, file,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            log.error("Could not launch %s: %s", BINARY, e)
            self._emit_error(e)
            self.emit("close", None)
        else:
            self.process = proc
            self._watch_task = asyncio.create_task(self._watch(proc))
            _watchers.add(self._watch_task)
            self._watch_task.add_done_callback(_watchers.discard)
            log.info("omxplayer instance %d started (pid %d): %s",
                     self.instance, proc.pid, file)

    async def stop_process(self, callback=None):
        """Best-effort stop: terminate the worker and forget all cached state.

        Never raises.  Lookup or signalling failures are logged and emitted as
        ``stop_error``; the instance still ends up stopped.
        """
        async with self._lifecycle_lock:
            await self._stop()

        if callback is not None:
            callback(None)

    async def _stop(self):
        proc = self.process
        if proc is None:
            return

        try:
            pid = await self.get_child_pid()
            await terminate_pid(pid)
        except Exception as e:
            log.warning("Could not terminate omxplayer worker for instance %d: %s",
                        self.instance, e)
            self._terminate_wrapper(proc)
            self.emit("stop_error", e)

        if self.process is proc:
            self._clear_state()
            log.info("omxplayer instance %d stopped", self.instance)

    def _terminate_wrapper(self, proc):
        try:
            proc.terminate()
        except ProcessLookupError:
            pass

    # ── Worker pid ──

    async def get_child_pid(self, callback=None) -> int:
        """Pid of the omxplayer.bin worker serving this instance's bus name."""
        return await deliver(self._resolve_child_pid(), callback)

    async def _resolve_child_pid(self) -> int:
        proc = self.process
        if proc is None:
            raise NotRunning()
        if self._worker_pid is not None:
            return self._worker_pid
        pid = await find_worker_pid(proc.pid)
        if self.process is proc:
            self._worker_pid = pid
        return pid

    # ── Process monitoring ──

    async def _watch(self, proc):
        await asyncio.gather(
            self._pump(proc, proc.stdout, "stdout"),
            self._pump(proc, proc.stderr, "stderr"),
        )
        code = await proc.wait()
        if self.process is not proc:
            # Stopped or replaced on purpose, no close event
            return
        log.info("omxplayer instance %d exited with code %s", self.instance, code)
        self._clear_state()
        self.emit("close", code)

    async def _pump(self, proc, stream, event: str):
        if stream is None:
            return
        while True:
            try:
                chunk = await stream.read(READ_CHUNK)
            except (OSError, ValueError) as e:
                if self.process is proc:
                    self._emit_error(e)
                return
            if not chunk:
                return
            if self.process is proc:
                self.emit(event, chunk)

    def _emit_error(self, exc: Exception):
        if self.listeners("error"):
            self.emit("error", exc)
        else:
            log.error("omxplayer instance %d error (no listener): %s", self.instance, exc)

    def _clear_state(self):
        bus = self._bus
        self.process = None
        self._worker_pid = None
        self._bus = None
        self._watch_task = None
        close_bus(bus)

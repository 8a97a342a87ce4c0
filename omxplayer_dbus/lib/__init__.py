"""
Shared plumbing for the omxplayer control layer.

  config.py         JSON config loader (cfg)
  errors.py         error types
  process_table.py  omxplayer.bin worker lookup / signalling (psutil)
  bus.py            bus address file + dbus-fast connection
  callbacks.py      awaitable ↔ error-first callback adapter
  supervisor.py     PlayerProcess — spawn, watch, stop
  bridge.py         DBusPlayer — Invocation → bus call
  watchdog.py       systemd heartbeat for the service
"""

"""
Shared configuration loader for omxplayer-dbus.

Loads a single JSON config file per host.  Search order:
  1. $OMXPLAYER_DBUS_CONFIG                (explicit override)
  2. /etc/omxplayer-dbus/config.json       (deployed config)
  3. config.json                           (CWD — handy for local dev)

Usage:
    from .config import cfg

    binary  = cfg("omxplayer", "binary", default="omxplayer")
    port    = cfg("service", "port", default=8780)
    options = cfg("omxplayer", "options", default={})
"""

import json
import logging
import os

logger = logging.getLogger(__name__)

_config: dict | None = None

_KNOWN_SECTIONS = ("omxplayer", "service")


def _search_paths() -> list[str]:
    paths = []
    override = os.environ.get("OMXPLAYER_DBUS_CONFIG")
    if override:
        paths.append(override)
    paths.append("/etc/omxplayer-dbus/config.json")
    paths.append("config.json")
    return paths


def _validate(config: dict, path: str) -> None:
    """Warn about missing or suspicious config values."""
    for section in config:
        if section not in _KNOWN_SECTIONS:
            logger.warning("Config %s: unknown section '%s'", path, section)
    service = config.get("service") or {}
    port = service.get("port")
    if port is not None and not isinstance(port, int):
        logger.warning("Config %s: service.port should be an integer, got %r", path, port)
    interval = service.get("watchdog_interval")
    if interval is not None and not isinstance(interval, (int, float)):
        logger.warning("Config %s: service.watchdog_interval should be a number, got %r",
                       path, interval)
    omx = config.get("omxplayer") or {}
    options = omx.get("options")
    if options is not None and not isinstance(options, dict):
        logger.warning("Config %s: omxplayer.options should be an object — ignoring", path)
    template = omx.get("address_file")
    if template and "{user}" not in template:
        logger.warning("Config %s: omxplayer.address_file has no {user} placeholder", path)


def load_config() -> dict:
    """Load config from the first JSON file found. Cached after first call."""
    global _config
    if _config is not None:
        return _config

    for path in _search_paths():
        try:
            with open(path) as f:
                _config = json.load(f)
                logger.info("Config loaded from %s", path)
                _validate(_config, path)
                return _config
        except FileNotFoundError:
            continue
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON in %s: %s", path, e)
            continue

    logger.debug("No config.json found — using defaults")
    _config = {}
    return _config


def cfg(section: str, key: str | None = None, *, default=None):
    """Read a config value.

    cfg("service")                      → config["service"]
    cfg("omxplayer", "binary")          → config["omxplayer"]["binary"]
    cfg("service", "port", default=8780)  → config["service"]["port"] or 8780
    """
    config = load_config()
    val = config.get(section)
    if key is None:
        return val if val is not None else default
    if isinstance(val, dict):
        return val.get(key, default)
    return default


def reload_config():
    """Force re-read from disk (for testing or hot-reload)."""
    global _config
    _config = None
    return load_config()

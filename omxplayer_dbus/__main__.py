"""
omxplayer control service.

Usage:
    python3 -m omxplayer_dbus

Port and default launch options come from config.json (see lib/config.py).
"""

import asyncio
import logging

from .service import PlayerService

logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] %(levelname)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def main():
    service = PlayerService()
    asyncio.run(service.run())


if __name__ == "__main__":
    main()

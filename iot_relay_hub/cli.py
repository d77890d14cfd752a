"""CLI entry point: run the relay hub under uvicorn."""

from __future__ import annotations

import argparse
import logging
import os
import socket

import uvicorn

from .common.config import get_settings
from .common.logging_config import configure_logging

logger = logging.getLogger(__name__)


def get_lan_address() -> str:
    """First non-loopback IPv4 address of this host, or ``localhost``."""
    try:
        _, _, addresses = socket.gethostbyname_ex(socket.gethostname())
    except OSError:
        return "localhost"
    for address in addresses:
        if not address.startswith("127."):
            return address
    return "localhost"


def main() -> None:
    settings = get_settings()

    p = argparse.ArgumentParser(description="IoT relay hub (HTTP + WebSocket)")
    p.add_argument("--host", default=settings.host)
    p.add_argument("--port", type=int, default=settings.port)
    p.add_argument("--log-level", default=settings.log_level)
    p.add_argument("--reload", action="store_true", help="restart on code changes (development)")
    args = p.parse_args()

    configure_logging(args.log_level)

    # The factory reads PORT from the environment for /status.
    os.environ["PORT"] = str(args.port)

    address = get_lan_address()
    logger.info("Server running on http://%s:%s", address, args.port)
    logger.info("WebSocket server running on ws://%s:%s", address, args.port)

    uvicorn.run(
        "iot_relay_hub.relay_api.main:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level.lower(),
    )


if __name__ == "__main__":
    main()

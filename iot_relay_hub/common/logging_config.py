from __future__ import annotations

import logging


LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
    )
    # uvicorn's access log duplicates the request-log middleware.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

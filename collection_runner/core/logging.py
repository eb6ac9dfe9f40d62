from __future__ import annotations

import logging
import sys

from collection_runner.core.logger import configure_structlog

# Libraries that log every outbound call or served request at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def configure_logging(level: str = "INFO") -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )
    # Request logs come from RequestContextMiddleware with the request id bound.
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
    configure_structlog()

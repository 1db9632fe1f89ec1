"""Logging setup for the help desk API."""

from __future__ import annotations

import logging

from helpdesk.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
# Third-party loggers that drown out request logs at INFO.
QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine")


def setup_logging(level: str | None = None) -> None:
    root = logging.getLogger()
    if root.handlers:
        return

    level_name = (level or settings.LOG_LEVEL or "INFO").upper()
    logging.basicConfig(level=level_name, format=LOG_FORMAT)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

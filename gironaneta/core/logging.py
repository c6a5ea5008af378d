"""
Girona Neta - Logging Configuration

Both entry points (the API process and the MTA pipe script) log through the
"gironaneta" logger. Repeated setup replaces our handler rather than
stacking a second one.
"""

import logging
import sys
from typing import IO, Optional

from gironaneta.core.config import settings

APP_LOGGER = "gironaneta"
HANDLER_NAME = "gironaneta-console"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Per-request chatter from HTTP clients and the ORM
NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "aiosqlite")


def resolve_level(name: str) -> int:
    """
    Map a level name such as "info" to its logging constant.

    Raises:
        ValueError: unknown level name
    """
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name!r}")
    return level


def setup_logging(
    level: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> logging.Logger:
    """
    Attach a console handler to the application logger.

    Args:
        level: Level name, defaults to settings.log_level
        stream: Output stream, defaults to stdout. The pipe script passes
            stderr so the MTA can include it in bounces.

    Returns:
        The "gironaneta" logger
    """
    log_level = resolve_level(level or settings.log_level)

    logger = logging.getLogger(APP_LOGGER)
    for existing in list(logger.handlers):
        if existing.get_name() == HANDLER_NAME:
            logger.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(log_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    return logger

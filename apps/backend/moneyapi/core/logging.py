"""
Logging setup shared by the API process and scripts.

Usage:
    from moneyapi.core.logging import setup_logging
    setup_logging()            # level from settings.LOG_LEVEL
    setup_logging("DEBUG")
"""

import logging
import sys

from .config import settings


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# libraries that log per statement / per request
NOISY_LOGGERS = [
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "httpx",
    "httpcore",
    "alembic.runtime.migration",
]


def setup_logging(level: str | int | None = None) -> logging.Logger:
    """Configure the root logger with a single console handler.

    Safe to call more than once: existing handlers are replaced.
    """
    resolved = level if level is not None else settings.LOG_LEVEL
    if isinstance(resolved, str):
        resolved = logging.getLevelName(resolved.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    root_logger.addHandler(console_handler)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    root_logger.debug("logging configured: level=%s", logging.getLevelName(resolved))
    return root_logger

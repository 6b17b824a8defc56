"""
utils/logger.py
---------------
Logging setup for CashDesk. Every module gets its logger through
`get_logger(__name__)`; the first call configures the root logger from
LOG_LEVEL (and LOG_FILE, when set).
"""

import logging
import sys
from logging.handlers import RotatingFileHandler

from config import LOG_FILE, LOG_LEVEL

_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"
_configured = False


def _build_handlers() -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if LOG_FILE:
        handlers.append(
            RotatingFileHandler(LOG_FILE, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        )
    formatter = logging.Formatter(_FORMAT, _DATEFMT)
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def _configure() -> None:
    global _configured
    if _configured:
        return
    root = logging.getLogger()
    level = logging.getLevelName(LOG_LEVEL.upper())
    root.setLevel(level if isinstance(level, int) else logging.INFO)
    for handler in _build_handlers():
        root.addHandler(handler)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """
    Named logger for a CashDesk module.

    Args:
        name: Usually ``__name__`` of the calling module.
    """
    _configure()
    return logging.getLogger(name)

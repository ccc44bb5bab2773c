"""
Logging setup for the CLI and the API server.

Library modules only create loggers (logging.getLogger(__name__));
handlers are installed here, once, by the entry points.
"""

from __future__ import annotations
import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str | int = "INFO", stream=None) -> logging.Logger:
    """
    Configure the dropfour logger hierarchy.

    Calling it again replaces the handler instead of adding another.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger("dropfour")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        if getattr(handler, "_dropfour", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._dropfour = True
    logger.addHandler(handler)
    return logger

"""Logging setup for the command line entry point."""

from __future__ import annotations

import logging
import sys


LOG_LEVELS = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

LOG_FORMAT = "%(levelname)s:     %(name)s: %(message)s"


def setup_logging(level: str | int = logging.INFO) -> logging.Logger:
    """Send svcgate records to stderr at ``level`` (a name or a logging constant)."""
    if isinstance(level, str):
        level = LOG_LEVELS.get(level.lower(), logging.INFO)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    logger = logging.getLogger("svcgate")
    logger.setLevel(level)
    return logger

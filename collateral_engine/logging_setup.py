"""Logging configuration."""
from __future__ import annotations

import logging
from typing import Iterable

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# HTTP client of the network price sources; noisy at DEBUG.
QUIET_LOGGERS = ("aiohttp",)


def resolve_level(level: str | int) -> int:
    """Map a level name or number to a logging level; unknown names give INFO."""
    if isinstance(level, int):
        return level
    numeric = logging.getLevelName(level.upper())
    return numeric if isinstance(numeric, int) else logging.INFO


def configure_logging(level: str | int = "INFO", quiet: Iterable[str] = QUIET_LOGGERS) -> None:
    """Install a single stream handler on the root logger.

    Safe to call repeatedly: the previous handler is replaced, not stacked.
    Loggers named in ``quiet`` are capped at WARNING.
    """
    logging.basicConfig(format=LOG_FORMAT, level=resolve_level(level), force=True)
    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)

"""Centralized logging configuration for images sync."""

import os
import sys
import logging
from typing import Optional

ROOT_LOGGER_NAME = "images_sync"

# (format, datefmt) per LOG_FORMAT value; unknown values fall back to simple
LOG_FORMATS = {
    "structured": (
        "%(asctime)s | %(name)s | %(levelname)-8s | "
        "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s",
        "%Y-%m-%d %H:%M:%S",
    ),
    "simple": ("%(asctime)s - %(name)s - %(levelname)s - %(message)s", None),
}


def resolve_level(level: Optional[str] = None) -> int:
    """
    Map a level name to its numeric value.

    Args:
        level: Level name; LOG_LEVEL (then INFO) is used when omitted

    Returns:
        The logging level, INFO for unknown names
    """
    name = level or os.getenv("LOG_LEVEL", "INFO")
    value = logging.getLevelName(name.upper())
    return value if isinstance(value, int) else logging.INFO


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: Optional[str] = None,
    format_type: str = "structured",
) -> logging.Logger:
    """
    Setup centralized logging with environment variable configuration.

    Args:
        name: Logger name (defaults to "images_sync")
        level: Log level override (defaults to env var or INFO)
        format_type: Logging format ("structured" or "simple")

    Returns:
        Configured logger instance

    Environment Variables:
        LOG_LEVEL: Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_FORMAT: Set format type ("structured" or "simple")
    """
    logger = logging.getLogger(name)
    logger.setLevel(resolve_level(level))

    # One stdout handler per logger, however often it is requested
    if not logger.handlers:
        env_format = os.getenv("LOG_FORMAT", format_type).lower()
        fmt, datefmt = LOG_FORMATS.get(env_format, LOG_FORMATS["simple"])

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
        logger.addHandler(handler)

    # Handlers are per logger, so the root must not print again
    logger.propagate = False
    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Get a logger instance with consistent configuration."""
    return setup_logger(name)


def set_log_level(level: str) -> None:
    """Apply ``level`` to every images_sync logger created so far."""
    log_level = resolve_level(level)
    for name in list(logging.root.manager.loggerDict):
        if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
            logging.getLogger(name).setLevel(log_level)


logger = setup_logger()

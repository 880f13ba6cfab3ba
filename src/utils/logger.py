"""Logging utilities for MicRecorder."""

import logging
import sys

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_ROOT_NAME = "src"


def configure_logging(level: str = "INFO", log_format: str = DEFAULT_FORMAT) -> logging.Logger:
    """Attach a console handler to the package logger.

    Calling this again only updates the level and format.

    Args:
        level: Level name, e.g. "INFO" or "DEBUG".
        log_format: ``logging.Formatter`` format string.

    Returns:
        The package logger.
    """
    logger = logging.getLogger(_ROOT_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    formatter = logging.Formatter(log_format)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        logger.addHandler(handler)
    for handler in logger.handlers:
        handler.setFormatter(formatter)

    return logger


def setup_logger(name: str) -> logging.Logger:
    """Get a module logger (typically called with ``__name__``)."""
    return logging.getLogger(name)

"""Logging configuration for fluffls."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

_ROOT_LOGGER = "fluffls"


def configure_logging(*, level: str = "INFO", log_file: Path | None = None) -> None:
    """
    Configure the fluffls logger.

    stdout carries the LSP stream in stdio mode, so records go to stderr
    unless a log file is given.

    Args:
        level: Log level name, case insensitive. Unknown names fall back to INFO.
        log_file: Optional path to log file. If None, logs to stderr.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logger = logging.getLogger(_ROOT_LOGGER)
    logger.setLevel(log_level)
    logger.handlers.clear()

    if log_file is not None:
        handler: logging.Handler = logging.FileHandler(log_file)
    else:
        handler = logging.StreamHandler(sys.stderr)

    handler.setFormatter(formatter)
    handler.setLevel(log_level)
    logger.addHandler(handler)
    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Return the ``fluffls.<name>`` logger."""
    return logging.getLogger(f"{_ROOT_LOGGER}.{name}")

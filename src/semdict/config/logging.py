"""Logging configuration for semdict."""

import logging
import sys
from pathlib import Path
from typing import Optional
from .settings import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Optional[str] = None, log_file: Optional[Path] = None) -> None:
    """
    Configure the ``semdict`` logger.

    Console output goes to stderr; stdout is reserved for generated SQL.

    Args:
        level: Logging level name, defaults to ``settings.log_level``
        log_file: Optional file that receives the same records
    """
    settings = get_settings()
    log_level = getattr(logging, (level or settings.log_level).upper())
    log_file = log_file or settings.log_file

    root_logger = logging.getLogger("semdict")
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(handler)

    # Keep records out of the host application's root logger
    root_logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Module logger under the ``semdict`` namespace, configured on first use."""
    if not logging.getLogger("semdict").handlers:
        setup_logging()

    if name.startswith("semdict"):
        return logging.getLogger(name)
    return logging.getLogger(f"semdict.{name}")

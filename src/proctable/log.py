"""Logging helpers for proctable."""

import logging
from pathlib import Path

from proctable.config import LOG_FILE

DETAILED_FORMAT = logging.Formatter(
    "%(asctime)s.%(msecs)03d | %(levelname)-8s | %(name)-20s | %(funcName)-20s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def setup_logging(level: int = logging.INFO, log_file: Path | None = LOG_FILE) -> logging.Logger:
    """
    Set up logging for the proctable namespace.

    Library modules never call this. The viewer does, because Textual owns
    the terminal and log output has to go to a file instead.

    Args:
        level: Logging level for the proctable logger.
        log_file: Where to write log records. None disables the file handler.

    Returns:
        The root proctable logger.
    """
    logger = logging.getLogger("proctable")
    logger.setLevel(level)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    if log_file is None:
        logger.addHandler(logging.NullHandler())
        return logger

    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(DETAILED_FORMAT)
    logger.addHandler(file_handler)

    logger.info("Logging initialized. Log file: %s", log_file)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific module."""
    return logging.getLogger(f"proctable.{name}")

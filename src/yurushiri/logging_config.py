"""Common logging configuration for Yurushiri"""

import logging
import sys

from yurushiri.config import config

# Raised to WARNING unless LOG_LEVEL is DEBUG
NOISY_LOGGERS = ("httpx", "httpcore", "multipart")


class BelowWarningFilter(logging.Filter):
    """Only pass records below WARNING (INFO and DEBUG)"""

    def filter(self, record):
        return record.levelno < logging.WARNING


def setup_logging(level_name: str | None = None):
    """
    Route INFO/DEBUG to stdout and WARNING/ERROR to stderr.

    Args:
        level_name: Optional override, otherwise LOG_LEVEL from config
    """
    level_name = (level_name or config.get("log_level") or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    formatter = logging.Formatter("%(levelname)s:%(name)s:%(message)s")

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(logging.DEBUG)
    stdout_handler.addFilter(BelowWarningFilter())
    stdout_handler.setFormatter(formatter)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.WARNING)
    stderr_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(stdout_handler)
    root_logger.addHandler(stderr_handler)

    if level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the given module name.

    Args:
        name: Usually __name__ from the calling module

    Returns:
        Logger instance
    """
    return logging.getLogger(name)

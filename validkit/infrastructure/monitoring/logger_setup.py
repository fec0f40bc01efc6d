"""Centralized logging configuration for applications using validkit.

The library itself only creates module loggers; applications call
``setup_logging`` once at startup to get console (and optionally file) output.
"""

import logging
import sys
from typing import Optional

from validkit.infrastructure.config.settings import get_config

DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LIBRARY_LOGGER = "validkit"


def resolve_log_level(level_name: Optional[str] = None) -> int:
    """Level from the given name or the ``logging.level`` config key."""
    name = str(level_name or get_config("logging.level", "INFO")).upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else DEFAULT_LOG_LEVEL


def setup_logging(
    log_level: Optional[int] = None,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Configures the validkit logger.

    Args:
        log_level: The minimum logging level. Read from config when None.
        log_format: The format string for log messages.
        log_file: Optional path to a file for logging output. Read from the
            ``logging.file`` config key when None.

    Returns:
        The configured ``validkit`` logger.
    """
    level = log_level if log_level is not None else resolve_log_level()
    log_file = log_file or get_config("logging.file")

    lib_logger = logging.getLogger(LIBRARY_LOGGER)
    lib_logger.setLevel(level)

    for handler in lib_logger.handlers[:]:
        lib_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    lib_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            lib_logger.error(f"Failed to set up file logging to {log_file}: {e}")
        else:
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            lib_logger.addHandler(file_handler)
            lib_logger.info(f"Logging to file: {log_file}")

    lib_logger.debug(f"Logging configured. Level={logging.getLevelName(level)}")
    return lib_logger

"""
Logging configuration for the extension checker.

Modules log through ``logging.getLogger(__name__)``; this module only wires
handlers onto the package logger when an entry point asks for it.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = "extension_checker"
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
MAX_LOG_FILE_SIZE = 5 * 1024 * 1024
LOG_FILE_BACKUP_COUNT = 3

_configured = False


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name for console output."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        original = record.levelname
        if original in self.COLORS:
            record.levelname = f"{self.COLORS[original]}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def setup_logging(
    level: Union[str, int] = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    colored: bool = True,
    format_string: str = DEFAULT_LOG_FORMAT,
) -> logging.Logger:
    """
    Configure the package logger once.

    Args:
        level: Logging level name or constant
        log_file: Optional path for a rotating log file
        colored: Color level names when stderr is a terminal
        format_string: Format used by every handler
    """
    global _configured
    logger = logging.getLogger(LOGGER_NAME)
    if _configured:
        return logger

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    if colored and sys.stderr.isatty():
        console.setFormatter(ColoredFormatter(format_string))
    else:
        console.setFormatter(logging.Formatter(format_string))
    logger.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=MAX_LOG_FILE_SIZE,
            backupCount=LOG_FILE_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(format_string))
        logger.addHandler(file_handler)

    _configured = True
    logger.debug("Logging configured - level=%s file=%s", logging.getLevelName(level), log_file)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger under the package namespace."""
    if name.startswith(LOGGER_NAME):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")

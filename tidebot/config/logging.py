"""
Logging for the bot and the terminal tools.

All modules log under the ``tidebot`` logger, which owns its handlers and
does not propagate, so discord.py and LiteLLM keep their own output.
Console lines go to stderr (stdout is reserved for chat replies in the
``chat`` and ``ask`` commands); the optional log file also records the
function and line that emitted each record.
"""

import logging
import sys
from pathlib import Path

from tidebot.config.settings import Settings

ROOT_LOGGER_NAME = "tidebot"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"


class ColoredFormatter(logging.Formatter):
    """Console formatter that paints the level name with an ANSI color."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        color = self.COLORS.get(levelname)
        if color:
            record.levelname = f"{color}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            # Other handlers see the same record; keep escape codes out of the log file
            record.levelname = levelname


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(fmt=_CONSOLE_FORMAT, datefmt=_DATE_FORMAT))
    return handler


def _file_handler(log_file: Path, level: int) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=_FILE_FORMAT, datefmt=_DATE_FORMAT))
    return handler


def setup_logging(settings: Settings) -> None:
    """
    Attach console (and, if ``log_file`` is set, file) handlers to the
    ``tidebot`` logger at ``settings.log_level``.

    Safe to call again: previously attached handlers are replaced.
    """
    level = getattr(logging, settings.log_level)
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.setLevel(level)
    package_logger.handlers.clear()

    package_logger.addHandler(_console_handler(level))
    if settings.log_file:
        package_logger.addHandler(_file_handler(Path(settings.log_file), level))

    package_logger.propagate = False

    package_logger.info(
        f"Logging at {settings.log_level}"
        + (f", also writing to {settings.log_file}" if settings.log_file else "")
    )


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name``, nested under ``tidebot`` if it isn't already."""
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")

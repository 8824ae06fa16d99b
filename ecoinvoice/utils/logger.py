"""
Logging Configuration Module.

All loggers of the system live below the ``ecoinvoice`` namespace, so one
call to setup_logger() configures the extraction, emission and finance
modules at once. Console output is colourised with colorama; a rotating
log file can be added from settings.yaml.

Usage:
    from ecoinvoice.utils.logger import setup_logger_from_config, get_logger

    setup_logger_from_config()          # once, at startup
    logger = get_logger(__name__)       # in every module
    logger.debug("No total found in document")
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Union

import colorama
from colorama import Fore, Style

from .exceptions import ConfigurationError

colorama.init()

ROOT_LOGGER_NAME = "ecoinvoice"
DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Console formatter that colours each record by severity."""

    COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelno, '')
        return f"{color}{super().format(record)}{Style.RESET_ALL}"


def parse_level(level: Union[str, int]) -> int:
    """
    Turn a level name such as "debug" into its numeric value.

    Raises:
        ConfigurationError: If the name is not a logging level.
    """
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        raise ConfigurationError(f"Unknown logging level: {level}", details={'level': level})
    return value


def setup_logger(
    level: Union[str, int] = "INFO",
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    log_file: Optional[Union[str, Path]] = None,
    max_bytes: int = 10485760,  # 10 MB
    backup_count: int = 5,
    colorize: bool = True
) -> logging.Logger:
    """
    Configure the ``ecoinvoice`` logger tree.

    Calling it again replaces the previous handlers.

    Args:
        level: Level name or number for the logger and its handlers.
        log_format: Record format, defaults to DEFAULT_FORMAT.
        date_format: Timestamp format, defaults to DEFAULT_DATE_FORMAT.
        log_file: Rotating log file; no file handler when None.
        max_bytes: File size that triggers rotation.
        backup_count: Rotated files to keep.
        colorize: Colour console records by level.

    Returns:
        The application root logger.
    """
    numeric_level = parse_level(level)
    log_format = log_format or DEFAULT_FORMAT
    date_format = date_format or DEFAULT_DATE_FORMAT

    app_logger = logging.getLogger(ROOT_LOGGER_NAME)
    app_logger.setLevel(numeric_level)
    app_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    formatter_class = ColoredFormatter if colorize else logging.Formatter
    console_handler.setFormatter(formatter_class(log_format, datefmt=date_format))
    app_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(logging.Formatter(log_format, datefmt=date_format))
        app_logger.addHandler(file_handler)

    set_level(numeric_level)
    app_logger.propagate = False

    app_logger.debug(f"Logging initialized at {logging.getLevelName(numeric_level)}")
    return app_logger


def set_level(level: Union[str, int]) -> None:
    """Change the level of the application logger and all its handlers."""
    numeric_level = parse_level(level)
    app_logger = logging.getLogger(ROOT_LOGGER_NAME)
    app_logger.setLevel(numeric_level)
    for handler in app_logger.handlers:
        handler.setLevel(numeric_level)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger below the application namespace.

    Module names already inside ``ecoinvoice`` are used as they are;
    anything else (e.g. ``__main__``) is nested under it.
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_logger_from_config() -> logging.Logger:
    """Configure logging from the ``logging`` section of settings.yaml."""
    from config import ConfigurationManager, get_config

    log_file = None
    if get_config("logging.file.enabled", False):
        log_file = ConfigurationManager().path("logging.file.path", "logs/ecoinvoice.log")

    return setup_logger(
        level=get_config("logging.level", "INFO"),
        log_format=get_config("logging.format"),
        date_format=get_config("logging.date_format"),
        log_file=log_file,
        max_bytes=get_config("logging.file.max_bytes", 10485760),
        backup_count=get_config("logging.file.backup_count", 5),
        colorize=get_config("logging.console.colorize", True)
    )

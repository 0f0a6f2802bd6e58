"""
Central logging configuration for icsengine.

Streams to stderr through a colorlog formatter, keeps third-party libraries
quiet and lets environment variables raise verbosity for troubleshooting.
"""

import logging
import os
import sys
from typing import Optional

from colorlog import ColoredFormatter

LOG_FORMAT = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"
LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Third-party loggers that are chatty at DEBUG
NOISY_LOGGERS: dict[str, int] = {
    "icalendar": logging.WARNING,
    "yaml": logging.WARNING,
    "asyncio": logging.WARNING,
}


def _env_debug() -> bool:
    return os.getenv("ICSENGINE_DEBUG", "").strip().lower() in ("1", "true", "yes", "on")


def build_formatter() -> ColoredFormatter:
    """Readable colorized format: ``HH:MM:SS  LEVEL   logger.name: message``.

    Only the level is colorized.
    """
    return ColoredFormatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT, log_colors=LOG_COLORS)


def configure_logging(level_name: Optional[str] = None, debug_mode: bool = False) -> int:
    """
    Configure root logging for icsengine.

    A stderr handler is installed only when the root logger has none, so
    embedding applications keep their own handlers.

    Args:
        level_name: Requested level name (case-insensitive); unknown names mean INFO
        debug_mode: Force DEBUG verbosity for icsengine modules

    Environment Variables:
        ICSENGINE_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        ICSENGINE_LOG_LEVEL: Override the root log level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        The root level that was applied
    """
    final_debug = debug_mode or _env_debug()

    root_level = logging.INFO
    if level_name and level_name.strip().upper() in VALID_LEVELS:
        root_level = getattr(logging, level_name.strip().upper())
    env_level = os.getenv("ICSENGINE_LOG_LEVEL", "").strip().upper()
    if env_level in VALID_LEVELS:
        root_level = getattr(logging, env_level)
    if final_debug:
        root_level = logging.DEBUG

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(build_formatter())
        root.addHandler(handler)
    root.setLevel(root_level)

    for logger_name, level in NOISY_LOGGERS.items():
        logging.getLogger(logger_name).setLevel(level)
    logging.getLogger("icsengine").setLevel(logging.DEBUG if final_debug else root_level)

    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(root_level)
    )
    return root_level


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ("icsengine", *NOISY_LOGGERS):
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status

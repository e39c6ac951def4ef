"""Logging configuration for ReachGraph.

Everything logs under the ``reachgraph`` namespace. Problems go to stderr,
and the full trail goes to a rotating file. Modules grab loggers at import
time, so the first ``get_logger`` call installs a default configuration;
the CLI then calls ``setup_logging`` again with the user's settings, which
swaps the handlers in place.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from reachgraph.config.defaults import (
    DEFAULT_LOG_BACKUP_COUNT,
    DEFAULT_LOG_LEVEL,
    DEFAULT_LOG_MAX_SIZE_MB,
    LOGS_DIR,
)

ROOT_LOGGER_NAME = "reachgraph"
DEFAULT_LOG_FILE = LOGS_DIR / "reachgraph.log"

CONSOLE_FORMAT = "%(levelname)s: %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_installed: list[logging.Handler] = []


def _to_level(level: str) -> int:
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def _file_handler(path: Path, level: int, max_size_mb: int, backup_count: int) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        path,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(
    level: str = DEFAULT_LOG_LEVEL,
    log_file: Path | None = None,
    max_size_mb: int = DEFAULT_LOG_MAX_SIZE_MB,
    backup_count: int = DEFAULT_LOG_BACKUP_COUNT,
) -> None:
    """
    Configure the reachgraph namespace logger.

    Calling this again replaces the handlers from the previous call.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Path to log file. Defaults to the logs directory.
        max_size_mb: Maximum log file size in MB before rotation.
        backup_count: Number of rotated files to keep.
    """
    numeric_level = _to_level(level)
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)

    for handler in _installed:
        root_logger.removeHandler(handler)
        handler.close()
    _installed.clear()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.WARNING)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))

    _installed.append(console)
    _installed.append(
        _file_handler(log_file or DEFAULT_LOG_FILE, numeric_level, max_size_mb, backup_count)
    )

    root_logger.setLevel(numeric_level)
    for handler in _installed:
        root_logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the reachgraph namespace.

    Args:
        name: Logger name (typically __name__).

    Returns:
        Logger instance.
    """
    if not _installed:
        setup_logging()

    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)

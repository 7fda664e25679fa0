"""
Logging configuration for hybridfg.

Library modules only ever call get_logger(__name__), so every record lands
under the "hybridfg" logger. setup_logging attaches handlers to that logger
alone; the root logger and other libraries' loggers are left as they are.
"""

import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

PACKAGE_LOGGER = "hybridfg"
DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

Level = Union[str, int]


def _numeric_level(level: Level) -> int:
    if isinstance(level, int):
        return level
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"unknown log level: {level!r}")
    return numeric


def setup_logging(
    level: Level = "WARNING",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
    logger_name: str = PACKAGE_LOGGER,
) -> logging.Logger:
    """
    Route the package's log records to stdout and, optionally, a file.

    Calling it again replaces the handlers installed by the previous call.

    Parameters
    ----------
    level : str or int
        Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_file : str, optional
        Also write records to this file; parent directories are created.
    format_string : str, optional
        Custom format string for log messages
    logger_name : str
        Logger to configure (default: the package logger)

    Returns
    -------
    logging.Logger
        The configured logger
    """
    numeric_level = _numeric_level(level)
    formatter = logging.Formatter(format_string or DEFAULT_FORMAT, datefmt=DATE_FORMAT)

    logger = logging.getLogger(logger_name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.setLevel(numeric_level)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger for a module (pass __name__)."""
    return logging.getLogger(name)


@contextmanager
def log_level(level: Level, name: str = PACKAGE_LOGGER) -> Iterator[logging.Logger]:
    """
    Temporarily set a logger's level, e.g. to trace a single elimination:

        with log_level("DEBUG"):
            eliminate_partial_sequential(graph, ordering)

    The previous level is restored on exit, also when the body raises.
    """
    logger = logging.getLogger(name)
    old_level = logger.level
    logger.setLevel(_numeric_level(level))
    try:
        yield logger
    finally:
        logger.setLevel(old_level)

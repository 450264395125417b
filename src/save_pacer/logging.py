"""Logging setup for save-pacer, built on loguru.

Every module logs through ``get_logger(__name__)``; each RateLimiter logs
through ``bind_run`` so lines from concurrent runs can be told apart:

    12:00:01 | INFO     | limiter [3f2a9c1e] - 4 items left in the queue

SQLAlchemy and aiosqlite use the standard library ``logging`` module; their
records are forwarded to loguru under their own logger names.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from loguru import logger

if TYPE_CHECKING:
    from types import FrameType

    from loguru import Logger, Record

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Library logger levels as (when debugging, otherwise)
_LIBRARY_LEVELS = {
    "sqlalchemy.engine": (logging.INFO, logging.WARNING),
    # aiosqlite logs every cursor operation at DEBUG
    "aiosqlite": (logging.WARNING, logging.WARNING),
}


def _origin(record: Record) -> str:
    """Format fragment naming where a record came from."""
    origin = "{extra[name]}" if "name" in record["extra"] else "{name}"
    if "run" in record["extra"]:
        origin += " [{extra[run]}]"
    if "source" in record["extra"]:
        origin += " ({extra[source]})"
    return origin


def _console_format(record: Record) -> str:
    return (
        "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | "
        f"<cyan>{_origin(record)}</cyan> - <level>{{message}}</level>\n{{exception}}"
    )


def _file_format(record: Record) -> str:
    return (
        "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
        f"{_origin(record)}:{{function}}:{{line}} | {{message}}\n{{exception}}"
    )


class InterceptHandler(logging.Handler):
    """Forward standard library log records to loguru, keeping the logger name."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip frames inside the logging module so loguru reports the real caller
        frame: FrameType | None = logging.currentframe()
        depth = 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.bind(name=record.name).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging(
    level: LogLevel = "INFO",
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    serialize: bool = False,
) -> Logger:
    """Configure loguru sinks for the CLI.

    Args:
        level: Console level from settings
        verbose: Force DEBUG (wins over quiet)
        quiet: Force WARNING
        log_file: Also write every DEBUG+ record to this rotating file
        rotation: Rotation trigger for the log file
        retention: How long rotated files are kept
        serialize: Write the log file as JSON lines

    Returns:
        The configured loguru logger
    """
    effective_level: LogLevel = "DEBUG" if verbose else "WARNING" if quiet else level

    logger.remove()
    logger.add(
        sys.stderr,
        level=effective_level,
        format=_console_format,
        colorize=True,
        backtrace=True,
        diagnose=True,
    )

    if log_file:
        logger.add(
            log_file,
            level="DEBUG",
            format=_file_format,
            rotation=rotation,
            retention=retention,
            compression="gz",
            serialize=serialize,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    debugging = effective_level in ("TRACE", "DEBUG")
    for name, (debug_level, default_level) in _LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(debug_level if debugging else default_level)

    return logger


def get_logger(name: str) -> Logger:
    """Logger with the module name bound, e.g. ``get_logger(__name__)``."""
    return logger.bind(name=name)


def bind_run(run_id: str) -> Logger:
    """Logger for one limiter run.

    Args:
        run_id: Short identifier of the RateLimiter instance

    Returns:
        Logger with ``name="limiter"`` and ``run`` bound
    """
    return logger.bind(name="limiter", run=run_id)


def reset_logging() -> None:
    """Remove every sink (used between tests)."""
    logger.remove()

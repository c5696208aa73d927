"""
Structured logging configuration for the archive bot.

Archive modules log events by key (``statement_timeout``, ``tables_checked``)
through structlog; everything ends up in the standard logging module so that
discord.py and asyncpg records share the same handlers. While an archive
operation runs, its name is bound to the logging context and attached to
every line logged on its behalf.
"""

import logging
import logging.handlers
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Optional

import structlog
from structlog.contextvars import bound_contextvars, merge_contextvars
from structlog.stdlib import LoggerFactory

LOG_DIR = "logs"
# Third-party loggers that follow the configured level instead of the root's.
LIBRARY_LOGGERS = ("discord", "asyncpg")


def _file_handler(log_file: str) -> logging.Handler:
    os.makedirs(LOG_DIR, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        filename=os.path.join(LOG_DIR, f"{log_file}.log"),
        encoding="utf-8",
        maxBytes=32 * 1024 * 1024,  # 32 MB
        backupCount=10,
    )


def configure_stdlib_logging(
    log_level: int = logging.INFO, log_file: Optional[str] = None
) -> None:
    """Route stdlib logging to stdout and, optionally, a rotating file.

    Args:
        log_level: Level for the root logger and the library loggers.
        log_file: Optional name of a log file written below ``logs/``.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(_file_handler(log_file))

    logging.basicConfig(format="%(message)s", level=log_level, handlers=handlers, force=True)
    for name in LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(log_level)


def _processors(log_format: str) -> list:
    processors = [
        merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return processors


def configure_structlog(log_format: str = "console") -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        log_format: ``"json"`` for machine-readable lines, anything else for
            the console renderer.
    """
    structlog.configure(
        processors=_processors(log_format),
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def init_logging(
    log_level: int = logging.INFO,
    log_file: Optional[str] = None,
    log_format: str = "console",
) -> structlog.stdlib.BoundLogger:
    """Initialize logging for the whole process.

    Returns:
        The logger for the bot itself.
    """
    configure_stdlib_logging(log_level, log_file)
    configure_structlog(log_format)
    return get_logger("archive.bot")


@contextmanager
def bind_operation(operation: str) -> Iterator[None]:
    """Attach ``operation=<name>`` to every line logged inside the block."""
    with bound_contextvars(operation=operation):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a named structlog logger.

    Example:
        logger.info("message_archived", message_id="1234", guild_id="42")
    """
    return structlog.get_logger(name)

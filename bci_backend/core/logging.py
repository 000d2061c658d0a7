"""
Structured logging configuration for the BCI game backend.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Iterator

import structlog
from structlog.types import Processor

from bci_backend.core.config import settings


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def configure_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_format: "json" or "console" (defaults to settings.log_format)
        log_level: Standard library level name (defaults to settings.log_level)
    """
    log_format = log_format or settings.log_format
    log_level = log_level or settings.log_level

    processors = _shared_processors()
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__ of the module)

    Returns:
        Configured logger instance

    Example:
        logger = get_logger(__name__)
        logger.info("trial_recorded", session_id="abc", trial_number=3)
    """
    return structlog.get_logger(name)


@contextmanager
def bound_context(**values) -> Iterator[None]:
    """
    Bind key/value pairs to every log line emitted inside the block.

    Example:
        with bound_context(session_id=session_id):
            logger.info("difficulty_adapted")  # carries session_id
    """
    with structlog.contextvars.bound_contextvars(**values):
        yield


# Initialize logging on module import
configure_logging()

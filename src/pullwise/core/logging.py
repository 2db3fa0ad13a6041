"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

# Third-party loggers that drown out job events at INFO
NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "openai", "uvicorn.access")


def setup_logging(level: str = "INFO", *, json_logs: bool | None = None) -> None:
    """Route stdlib and structlog records through one handler on stdout.

    JSON lines unless the level is DEBUG (or ``json_logs`` is False), in which
    case a coloured console renderer is used.  Safe to call repeatedly.
    """
    level = level.upper()
    if json_logs is None:
        json_logs = level != "DEBUG"

    renderer: structlog.types.Processor
    if json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a bound logger for a module."""
    return structlog.get_logger(name)


@contextmanager
def review_context(review_id: str, **extra: object) -> Iterator[None]:
    """Attach ``review_id`` (and any extra keys) to every log line in the block.

    Context is stored in contextvars, so concurrent worker tasks never see
    each other's ids.
    """
    with structlog.contextvars.bound_contextvars(review_id=review_id, **extra):
        yield

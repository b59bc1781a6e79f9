"""
Structured logging for the adaptive core.

structlog wraps stdlib logging: every module logs events with keyword
context through `get_logger(__name__)`, and `setup_logging()` decides how
the records are rendered (coloured console lines on a terminal, plain
console lines otherwise, JSON lines when SIRIUS_LOG_FORMAT=json).

Work done on behalf of one user runs inside `user_log_context(user_id)`,
so every event logged during it carries `user_id` without passing it
through each call.

Usage:
    from sirius.logging_config import get_logger, setup_logging, user_log_context

    setup_logging()
    logger = get_logger(__name__)

    with user_log_context("alice"):
        logger.info("trigger_activated", action="Pomodoro Break")
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog


ENV_LEVEL = "SIRIUS_LOG_LEVEL"
ENV_FORMAT = "SIRIUS_LOG_FORMAT"


def _renderer(json_output: bool) -> structlog.types.Processor:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def setup_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """
    Route structlog through the root stdlib logger, writing to stderr.

    Args:
        level: Level name; defaults to $SIRIUS_LOG_LEVEL, then INFO
        json_output: JSON lines instead of console output; defaults to
            $SIRIUS_LOG_FORMAT == "json"
    """
    level = level or os.environ.get(ENV_LEVEL, "INFO")
    if json_output is None:
        json_output = os.environ.get(ENV_FORMAT, "").lower() == "json"

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(json_output),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def user_log_context(user_id: str) -> Iterator[None]:
    """Bind `user_id` to every event logged inside the block (task/thread local)."""
    with structlog.contextvars.bound_contextvars(user_id=user_id):
        yield


__all__ = ["get_logger", "setup_logging", "user_log_context"]

"""Logging configuration for the serverless functions.

structlog is configured once per cold start and reused across invocations.
Request handlers bind a ``request_id`` into the context vars so every event
emitted while serving that request carries it.
"""
from __future__ import annotations

import logging
import os
from typing import Any, List

import structlog


def _renderer() -> Any:
    if os.getenv("LOG_FORMAT", "json").lower() == "console":
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def configure_logging() -> None:
    """Set up structlog with JSON rendering suitable for serverless logs."""
    if getattr(configure_logging, "_configured", False):
        return

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=log_level, format="%(message)s")

    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _renderer(),
    ]
    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    configure_logging._configured = True  # type: ignore[attr-defined]


def bind_request(request_id: str, **fields: Any) -> None:
    """Attach request scoped fields to every log event until cleared."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, **fields)


def clear_request() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to the jotd service."""
    configure_logging()
    logger = structlog.get_logger(name)
    return logger.bind(service="jotd")

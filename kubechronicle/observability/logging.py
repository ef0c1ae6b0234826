"""Structured logging for kubechronicle.

All components log through structlog as single-line JSON on stderr. The
admission endpoint binds the request UID into the context so every line
emitted while deciding a request carries it.
"""

from __future__ import annotations

import logging
import sys

import structlog


def setup_logging(level: str = "info") -> None:
    """Configure structlog for JSON output to stderr at *level*."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]


def bind_request_context(request_uid: str) -> None:
    """Attach the admission request UID to every log line in this context."""
    structlog.contextvars.clear_contextvars()
    if request_uid:
        structlog.contextvars.bind_contextvars(request_uid=request_uid)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()

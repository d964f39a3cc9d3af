"""Structured logging configuration with JSON format.

Features:
- JSON-formatted log output for production
- Human-readable format for development
- Endpoint and session bound per proxy request through structlog contextvars
- Service context on every entry
- Search text truncated before rendering
"""

import logging
import sys
from contextlib import AbstractContextManager
from typing import Any

import structlog
from structlog.types import Processor

from search_proxy.core.config import get_settings


# Characters of search text kept in log entries
QUERY_LOG_LENGTH = 50


def add_service_context(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Add service context to all log entries.

    Args:
        logger: The wrapped logger object.
        method_name: The name of the method called on the logger.
        event_dict: The event dictionary to process.

    Returns:
        Updated event dictionary with service context.
    """
    settings = get_settings()
    event_dict["service"] = settings.service_name
    event_dict["environment"] = settings.environment
    return event_dict


def truncate_query(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Shorten logged search text to QUERY_LOG_LENGTH characters."""
    query = event_dict.get("query")
    if isinstance(query, str) and len(query) > QUERY_LOG_LENGTH:
        event_dict["query"] = f"{query[:QUERY_LOG_LENGTH]}..."
    return event_dict


def request_context(
    *,
    endpoint: str | None = None,
    session_id: str | None = None,
) -> AbstractContextManager[None]:
    """Bind proxy request fields to every entry logged inside the block.

    Tasks created inside the block inherit the binding, so detached
    analytics writes log under the request that scheduled them.

    Example:
        ```python
        with request_context(endpoint="suggest", session_id=session_id):
            logger.info("Cache hit")  # carries endpoint and session_id
        ```
    """
    fields = {"endpoint": endpoint, "session_id": session_id}
    return structlog.contextvars.bound_contextvars(
        **{name: value for name, value in fields.items() if value is not None}
    )


def configure_logging() -> None:
    """Configure structured logging for the application.

    In development: Human-readable colored output
    In production: JSON-formatted structured logs
    """
    settings = get_settings()

    use_json = settings.environment in ("production", "staging")

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_service_context,
        truncate_query,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if use_json:
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(settings.log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.getLevelName(settings.log_level.upper()),
    )

    # Reduce noise from third-party libraries
    for noisy in ("httpx", "httpcore", "uvicorn.access", "pymongo"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Optional logger name (module name recommended).

    Returns:
        Configured structlog logger.

    Example:
        ```python
        from search_proxy.core.logging import get_logger

        logger = get_logger(__name__)
        logger.info("Cache hit", endpoint="suggest", version="v1")
        ```
    """
    return structlog.get_logger(name)

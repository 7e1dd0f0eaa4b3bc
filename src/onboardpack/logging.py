"""Structured logging configuration for onboardpack.

This module configures structlog with support for:
- JSON and console output formats
- File rotation based on size
- Correlation IDs for a generation run
- Run and repository context binding

The logging system integrates structlog with Python's stdlib logging
for handlers (file rotation), while using structlog exclusively for
actual log emission.

Example usage:
    >>> import structlog
    >>> from onboardpack.config import LoggingConfig
    >>> from onboardpack.logging import setup_logging, bind_run_context
    >>>
    >>> setup_logging(LoggingConfig(level="INFO", format="console"))
    >>> bind_run_context(run_id="r-123", repo="my-service")
    >>> structlog.get_logger(__name__).info("pipeline_started")
"""

from __future__ import annotations

import contextvars
import logging
import logging.handlers
import sys
from typing import Any

import structlog

from onboardpack.config import LoggingConfig

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


def add_correlation_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add correlation_id to log event if set in context.

    Args:
        logger: Logger instance (unused, required by structlog protocol)
        method_name: Log method name (unused, required by structlog protocol)
        event_dict: Current event dictionary to augment

    Returns:
        Event dictionary with correlation_id added if available
    """
    correlation_id = _correlation_id.get()
    if correlation_id is not None:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def set_correlation_id(correlation_id: str | None) -> None:
    """Set correlation ID for current context."""
    _correlation_id.set(correlation_id)


def bind_run_context(run_id: str, repo: str) -> None:
    """Bind run and repository identifiers to all subsequent logs.

    Args:
        run_id: Identifier of the generation run
        repo: Repository name being analyzed
    """
    set_correlation_id(run_id)
    structlog.contextvars.bind_contextvars(run_id=run_id, repo=repo)


def setup_logging(config: LoggingConfig) -> None:
    """Configure structlog with the given configuration.

    Logs go to stderr (stdout is reserved for CLI output) unless a file
    is configured, in which case a size-rotated file handler is used.

    Args:
        config: Logging configuration from OnboardpackConfig
    """
    log_level = getattr(logging, config.level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    if config.file is not None:
        config.file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.handlers.RotatingFileHandler(
            filename=config.file,
            maxBytes=config.rotation_size_mb * 1024 * 1024,
            backupCount=config.retention_count,
            encoding="utf-8",
        )
    else:
        handler = logging.StreamHandler(sys.stderr)

    handler.setLevel(log_level)
    root_logger.addHandler(handler)

    if config.format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.contextvars.merge_contextvars,
            add_correlation_id,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

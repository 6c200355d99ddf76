"""Structured logging configuration for dockerstep.

This module configures structlog with support for:
- JSON and console output formats
- File rotation based on size
- Correlation IDs tying a step run to the host build
- Step context binding

The logging system integrates structlog with Python's stdlib logging
for handlers (file rotation), while using structlog exclusively for
actual log emission.

Example usage:
    >>> from dockerstep.config import LoggingConfig
    >>> from dockerstep.logging import setup_logging, get_logger, bind_step_context
    >>>
    >>> setup_logging(LoggingConfig(level="INFO", format="json"))
    >>> logger = get_logger(__name__)
    >>> bind_step_context(step="push", execution_id="b1c2")
    >>> logger.info("step_started")
"""

from __future__ import annotations

import contextvars
import logging
import logging.handlers
import sys
from typing import Any

import structlog
from structlog.typing import Processor

from dockerstep.config import LoggingConfig

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


def get_correlation_id() -> str | None:
    """Get current correlation ID from context."""
    return _correlation_id.get()


def bind_step_context(step: str, execution_id: str) -> None:
    """Bind step name and execution id to all subsequent logs.

    Args:
        step: Name of the running step
        execution_id: Identifier of this particular step run
    """
    structlog.contextvars.bind_contextvars(step=step, execution_id=execution_id)


def clear_step_context() -> None:
    """Remove the bindings made by bind_step_context."""
    structlog.contextvars.unbind_contextvars("step", "execution_id")


def setup_logging(config: LoggingConfig) -> None:
    """Configure structlog with the given configuration.

    Events pass through the shared processors (level, logger name, ISO
    timestamp, contextvars, correlation ID) and are handed to the stdlib
    handler, whose ProcessorFormatter renders each record exactly once.
    Exceptions therefore end up inside the JSON line rather than after it.
    Records from plain stdlib loggers get the same treatment.

    Args:
        config: Logging configuration from DockerStepConfig
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
        handler = logging.StreamHandler(sys.stdout)

    shared_processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.contextvars.merge_contextvars,
        add_correlation_id,
        structlog.processors.StackInfoRenderer(),
    ]

    renderer: Processor
    if config.format == "json":
        # JSON needs the traceback as a string field
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:  # console
        renderer = structlog.dev.ConsoleRenderer()

    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )
    handler.setLevel(log_level)
    root_logger.addHandler(handler)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Configured structlog BoundLogger instance
    """
    return structlog.get_logger(name)

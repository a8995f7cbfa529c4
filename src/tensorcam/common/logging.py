"""Structured logging for tensorcam.

Logs go to stderr so stdout stays free for CLI output such as
``tensorcam config --json-output``.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import numpy as np
import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Libraries that are chatty at DEBUG while decoding images
_NOISY_LOGGERS = ("PIL",)


def summarize_arrays(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Render image buffers as their shape and dtype instead of their pixels."""
    for key, value in event_dict.items():
        if isinstance(value, np.ndarray):
            event_dict[key] = f"ndarray(shape={value.shape}, dtype={value.dtype})"
    return event_dict


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    service_name: str | None = None,
) -> None:
    """Configure structured logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        json_output: Output JSON format (for production).
        service_name: Service name; adds call-site fields when set.
    """
    log_level = getattr(logging, level.upper())

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.INFO))

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        summarize_arrays,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if service_name:
        shared_processors.insert(
            0,
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.FILENAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            ),
        )

    renderer: Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None, **initial_values: Any) -> structlog.BoundLogger:
    """Get a structured logger.

    Args:
        name: Logger name (typically module name).
        **initial_values: Initial context values to bind.

    Returns:
        Bound structured logger.
    """
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger

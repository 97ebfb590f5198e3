"""
Structured Logging for Chainplace

Configures structlog on top of the standard library logging module and
provides a per-thread correlation id so every diagnostic emitted during one
scheduling cycle can be tied back to that cycle.
"""

import logging
import sys
import threading
import uuid
from contextlib import contextmanager
from typing import Optional

import structlog

from .config import get_config

# Thread-local storage for correlation context
_correlation_context = threading.local()


class CorrelationContext:
    """Manages the scheduling-cycle correlation id of the current thread."""

    @staticmethod
    def get_correlation_id() -> str:
        """Get the current correlation ID, creating one if needed."""
        if not hasattr(_correlation_context, "correlation_id"):
            _correlation_context.correlation_id = str(uuid.uuid4())[:8]
        return _correlation_context.correlation_id

    @staticmethod
    def set_correlation_id(correlation_id: str):
        """Set the correlation ID for the current thread."""
        _correlation_context.correlation_id = correlation_id

    @staticmethod
    def clear_correlation_id():
        """Clear the correlation ID for the current thread."""
        if hasattr(_correlation_context, "correlation_id"):
            delattr(_correlation_context, "correlation_id")


@contextmanager
def correlation_scope(correlation_id: Optional[str] = None):
    """Run a block under a correlation id, restoring the previous one afterwards."""
    previous = getattr(_correlation_context, "correlation_id", None)
    CorrelationContext.set_correlation_id(correlation_id or str(uuid.uuid4())[:8])
    try:
        yield CorrelationContext.get_correlation_id()
    finally:
        if previous:
            CorrelationContext.set_correlation_id(previous)
        else:
            CorrelationContext.clear_correlation_id()


def _add_correlation(logger, method_name, event_dict):
    """structlog processor adding the thread's correlation id."""
    correlation_id = getattr(_correlation_context, "correlation_id", None)
    if correlation_id is not None:
        event_dict.setdefault("correlation_id", correlation_id)
    return event_dict


def setup_logging():
    """Setup structured logging for Chainplace."""
    config = get_config()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            _add_correlation,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            (
                structlog.processors.JSONRenderer()
                if config.logging.log_format == "json"
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger("chainplace_core")
    level = "DEBUG" if config.debug else config.logging.log_level
    root_logger.setLevel(getattr(logging, level))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # structlog renders the final line; the handler only writes it out
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)
    root_logger.propagate = False


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


# Initialize logging on module import
setup_logging()

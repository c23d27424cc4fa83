"""
Centralized logging and error handling utilities for the chat relay.

This module standardizes how relay calls are logged and how exceptions
reaching the relay boundary become a client-facing error message.

Features:
- Structured logging with contextual information
- Error classification by category
- Operation timing, including cancelled operations
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from chat_relay.llm.exceptions import RelayError

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(colors=True),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal relay error"


class RelayErrorHandler:
    """Turns exceptions into a category and a client-facing message."""

    @staticmethod
    def classify_error(error: Exception) -> str:
        """
        Classify an error into a category for logging.

        Args:
            error: The exception to classify

        Returns:
            The error category
        """
        if isinstance(error, RelayError):
            return error.category
        if isinstance(error, ValidationError):
            return "validation_error"
        if isinstance(error, TimeoutError | httpx.TimeoutException):
            return "timeout_error"
        if isinstance(error, ConnectionError | OSError | httpx.TransportError):
            return "connection_error"
        return "unknown_error"

    @staticmethod
    def client_message(error: Exception) -> str:
        """Message safe to send to the browser."""
        if isinstance(error, RelayError):
            return str(error) or INTERNAL_ERROR_MESSAGE
        return INTERNAL_ERROR_MESSAGE

    @staticmethod
    def create_error_message(
        error: Exception,
        operation: str,
        context: dict[str, Any] | None = None,
    ) -> str:
        """
        Log an error with context and return the client-facing message.

        Args:
            error: Original exception
            operation: Description of the operation that failed
            context: Additional context for logging

        Returns:
            Message for the error event
        """
        error_category = RelayErrorHandler.classify_error(error)

        logger.error(
            "Operation failed",
            operation=operation,
            error_type=type(error).__name__,
            error_category=error_category,
            error_message=str(error),
            **(context or {}),
        )

        return RelayErrorHandler.client_message(error)


@asynccontextmanager
async def operation_context(
    operation: str,
    *,
    context: dict[str, Any] | None = None,
    log_timing: bool = True,
):
    """
    Async context manager for operation logging.

    Args:
        operation: Description of the operation
        context: Additional context for logging
        log_timing: Whether to log operation timing

    Yields:
        Bound logger for the operation
    """
    operation_logger = logger.bind(
        operation=operation,
        **(context or {}),
    )

    operation_logger.info("Operation started")
    start_time = time.perf_counter() if log_timing else None

    def _timing() -> dict[str, Any]:
        if log_timing and start_time is not None:
            return {"duration_ms": round((time.perf_counter() - start_time) * 1000, 2)}
        return {}

    try:
        yield operation_logger
    except (asyncio.CancelledError, GeneratorExit):
        operation_logger.info("Operation cancelled", **_timing())
        raise
    except Exception as e:
        operation_logger.error(
            "Operation failed",
            error_type=type(e).__name__,
            error_message=str(e),
            **_timing(),
        )
        raise
    else:
        operation_logger.info("Operation completed successfully", **_timing())

"""
Logging configuration for the Qwen Coder client.

Provides structured logging setup with JSON output for production and
human-readable output for development. Supports correlation IDs so a host
application can trace a single operation across the token exchange and the
operation request.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from structlog.types import EventDict


# Context variable for correlation ID
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def add_correlation_id(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add correlation ID to log events if present in context.

    Args:
        logger: Logger instance
        method_name: Name of the logging method
        event_dict: Event dictionary to modify

    Returns:
        Modified event dictionary with correlation_id if available
    """
    correlation_id = correlation_id_var.get()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """
    Set correlation ID for the current context.

    Args:
        correlation_id: Optional correlation ID. If None, generates a new UUID.

    Returns:
        The correlation ID that was set
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    correlation_id_var.set(correlation_id)
    return correlation_id


def clear_correlation_id() -> None:
    """Clear correlation ID from the current context."""
    correlation_id_var.set(None)


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from context, or None if not set."""
    return correlation_id_var.get()


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    json_format: bool = True,
) -> None:
    """
    Configure structured logging for the client.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to log file. If None, logs only to stderr.
        json_format: If True, use JSON format. If False, use human-readable format.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Clear existing handlers to avoid duplicates
    root_logger.handlers.clear()

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        handler: logging.Handler = logging.FileHandler(log_file)
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)

    processors: list = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_correlation_id,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance for a specific module.

    Args:
        name: Logger name (typically __name__ of the module).

    Returns:
        Structured logger instance.
    """
    if name.startswith("qwencoder"):
        return structlog.get_logger(name)
    return structlog.get_logger(f"qwencoder.{name}")


# Convenience functions for common logging patterns

def log_token_exchange(
    logger: structlog.stdlib.BoundLogger,
    success: bool,
    expires_in: Optional[float] = None,
    duration_ms: Optional[float] = None,
    reason: Optional[str] = None,
    **kwargs: Any,
) -> None:
    """
    Log an API key to bearer token exchange.

    Never pass the API key or the issued token to this function.

    Args:
        logger: Logger instance
        success: Whether the exchange succeeded
        expires_in: Server-declared token lifetime in seconds
        duration_ms: Exchange duration in milliseconds
        reason: Reason for failure if not successful
        **kwargs: Additional context to log
    """
    log_data: Dict[str, Any] = {
        "event_type": "token_exchange",
        "success": success,
    }

    if expires_in is not None:
        log_data["expires_in"] = expires_in
    if duration_ms is not None:
        log_data["duration_ms"] = duration_ms
    if reason is not None:
        log_data["reason"] = reason

    log_data.update(kwargs)

    if success:
        logger.info("token_exchange", **log_data)
    else:
        logger.warning("token_exchange_failed", **log_data)


def log_operation_request(
    logger: structlog.stdlib.BoundLogger,
    operation: str,
    endpoint: str,
    success: bool,
    duration_ms: float,
    error_kind: Optional[str] = None,
    **kwargs: Any,
) -> None:
    """
    Log a code operation request (analyze, generate, refactor).

    Args:
        logger: Logger instance
        operation: Operation name
        endpoint: Endpoint path that was called
        success: Whether the request succeeded
        duration_ms: Request duration in milliseconds
        error_kind: ErrorKind value if the request failed
        **kwargs: Additional context to log
    """
    log_data: Dict[str, Any] = {
        "event_type": "operation_request",
        "operation": operation,
        "endpoint": endpoint,
        "success": success,
        "duration_ms": duration_ms,
    }

    if error_kind is not None:
        log_data["error_kind"] = error_kind

    log_data.update(kwargs)

    if success:
        logger.debug("operation_request", **log_data)
    else:
        logger.error("operation_request_failed", **log_data)

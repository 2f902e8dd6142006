"""
Graceful failure utilities.

This module provides reusable context managers for handling non-critical
operations that should not block the main execution flow. It centralizes
the common "graceful degradation" pattern of:
1. Attempting an operation
2. Logging any exceptions with context
3. Continuing execution without raising

This is distinct from `db_error_handling.py` which handles critical errors
that require rollback and HTTP error responses.

Usage:
    from app.core.graceful_failure import graceful_failure

    with graceful_failure("track session resume", logger):
        AnalyticsTracker.track_session_resumed(...)

    # Async operations use the async variant and keep a fallback value:
    percentile = DEFAULT_PERCENTILE
    async with async_graceful_failure("calculate percentile", logger):
        percentile = await _count_percentile(db, test_id, score)
"""

import logging
from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncGenerator, Generator, Optional

from libs.observability import observability


def _log_failure(
    operation_name: str,
    logger: logging.Logger,
    error: Exception,
    log_level: int,
    exc_info: bool,
    context: Optional[dict[str, Any]],
) -> None:
    """Log a swallowed exception and report it to error tracking."""
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        message = f"Failed to {operation_name} ({context_str}): {error}"
    else:
        message = f"Failed to {operation_name}: {error}"

    logger.log(log_level, message, exc_info=exc_info)

    observability.capture_error(
        error,
        context={"operation": operation_name, **(context or {})},
        level="warning",
        tags={"error_type": "GracefulFailure"},
    )


@contextmanager
def graceful_failure(
    operation_name: str,
    logger: logging.Logger,
    *,
    log_level: int = logging.WARNING,
    exc_info: bool = False,
    context: Optional[dict[str, Any]] = None,
) -> Generator[None, None, None]:
    """Context manager for non-critical operations that should not block execution.

    Unlike `async_handle_db_error`, this does NOT:
    - Raise HTTPException
    - Rollback the database session
    - Stop execution

    Args:
        operation_name: Human-readable name of the operation for logging
            (e.g., "track analytics event").
        logger: The logger instance to use for logging errors.
        log_level: Logging level for error messages. Defaults to WARNING.
        exc_info: Whether to include exception traceback in log. Defaults to False.
        context: Optional dictionary of additional context to include in log message
            (e.g., {"test_id": "abc"}).
    """
    try:
        yield
    except Exception as e:
        _log_failure(operation_name, logger, e, log_level, exc_info, context)


@asynccontextmanager
async def async_graceful_failure(
    operation_name: str,
    logger: logging.Logger,
    *,
    log_level: int = logging.WARNING,
    exc_info: bool = False,
    context: Optional[dict[str, Any]] = None,
) -> AsyncGenerator[None, None]:
    """Async counterpart of `graceful_failure` for awaited operations."""
    try:
        yield
    except Exception as e:
        _log_failure(operation_name, logger, e, log_level, exc_info, context)

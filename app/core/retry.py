"""
Bounded retry for idempotent reads.

A couple of read endpoints (the profile lookup and the personal dashboard)
retry a failed read once before giving up. Each attempt runs under a fixed
timeout; only timeouts and transient database errors are retried. Writes are
never retried here.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db_error_handling import async_handle_db_error
from app.core.error_responses import ErrorMessages, raise_service_unavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERRORS: Tuple[Type[BaseException], ...] = (
    asyncio.TimeoutError,
    OperationalError,
)


@dataclass
class RetryConfig:
    """Retry policy. Defaults come from settings."""

    attempts: int = field(default_factory=lambda: settings.READ_RETRY_ATTEMPTS)
    timeout_seconds: float = field(
        default_factory=lambda: settings.READ_RETRY_TIMEOUT_SECONDS
    )
    delay_seconds: float = 0.1

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")


def _is_retryable(error: BaseException) -> bool:
    if isinstance(error, DBAPIError) and error.connection_invalidated:
        return True
    return isinstance(error, RETRYABLE_ERRORS)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    operation_name: str,
    config: Optional[RetryConfig] = None,
    before_retry: Optional[Callable[[], Awaitable[None]]] = None,
) -> T:
    """
    Run ``operation`` with a per-attempt timeout, retrying transient failures.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt
        operation_name: Used in log messages
        config: Retry policy (defaults from settings)
        before_retry: Awaited between attempts, e.g. ``db.rollback`` so the
            next attempt starts from a clean session

    Returns:
        The operation's result

    Raises:
        The last error once attempts are exhausted, or any non-retryable
        error immediately.
    """
    config = config or RetryConfig()

    for attempt in range(1, config.attempts + 1):
        try:
            return await asyncio.wait_for(operation(), timeout=config.timeout_seconds)
        except Exception as e:
            if not _is_retryable(e) or attempt == config.attempts:
                if attempt > 1:
                    logger.warning(
                        f"{operation_name} failed after {attempt} attempts: "
                        f"{type(e).__name__}"
                    )
                raise

            logger.info(
                f"{operation_name} attempt {attempt}/{config.attempts} failed "
                f"({type(e).__name__}), retrying"
            )
            if before_retry is not None:
                await before_retry()
            await asyncio.sleep(config.delay_seconds)

    # Unreachable: the loop either returns or raises
    raise RuntimeError(f"{operation_name}: retry loop exited without a result")


async def retry_read(
    db: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    operation_name: str,
    config: Optional[RetryConfig] = None,
) -> T:
    """
    Endpoint wrapper around ``with_retry`` for database reads.

    The session is rolled back between attempts. A database error that
    survives the retries becomes a 500 and a final timeout becomes a 503.
    """
    try:
        async with async_handle_db_error(db, operation_name):
            return await with_retry(
                operation, operation_name, config=config, before_retry=db.rollback
            )
    except asyncio.TimeoutError:
        logger.error(f"{operation_name} timed out")
        raise_service_unavailable(ErrorMessages.REQUEST_TIMEOUT)

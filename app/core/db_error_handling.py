"""
Database error handling utilities.

This module provides a reusable async context manager for handling database
errors consistently across the endpoints. It centralizes the common
pattern of:
1. Rolling back the database session on error
2. Logging the error with context
3. Raising an HTTPException with a generic, user-safe message

Only SQLAlchemy errors are translated. HTTPExceptions and domain errors
(for example ``SessionNotFoundError``) pass through unchanged so that the
application's exception handlers can render them as 4xx responses.

Usage:
    from app.core.db_error_handling import async_handle_db_error

    async with async_handle_db_error(db, "save progress"):
        session.time_spent = 45
        await db.commit()
        await db.refresh(session)
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.error_responses import ErrorMessages


logger = logging.getLogger(__name__)


@asynccontextmanager
async def async_handle_db_error(
    db: AsyncSession,
    operation_name: str,
    *,
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    log_level: int = logging.ERROR,
) -> AsyncGenerator[None, None]:
    """Async context manager for handling database errors consistently.

    Args:
        db: The async database session to rollback on error.
        operation_name: Human-readable name of the operation for error messages
            and logging (e.g., "create session", "save progress").
        status_code: HTTP status code to use in the raised HTTPException.
            Defaults to 500 Internal Server Error.
        log_level: Logging level for error messages. Defaults to logging.ERROR.

    Raises:
        HTTPException: When a SQLAlchemyError escapes the block, after the
            session is rolled back. The detail never includes the driver's
            error text.

    Example:
        >>> async with async_handle_db_error(db, "abandon session"):
        ...     deleted = await abandon_session(db, user.id, test_id)
        ...     await db.commit()
    """
    try:
        yield
    except SQLAlchemyError as e:
        await db.rollback()

        logger.log(
            log_level,
            f"Database error during {operation_name}: {e}",
            exc_info=True,
        )

        raise HTTPException(
            status_code=status_code,
            detail=ErrorMessages.database_operation_failed(operation_name),
        )

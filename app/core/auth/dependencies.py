"""
FastAPI authentication dependencies.

Tokens are read from the ``Authorization: Bearer`` header first and from the
auth cookies second.
"""
from typing import Literal, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.error_responses import ErrorMessages, raise_unauthorized
from app.models import User, get_db
from libs.observability import observability

from .cookies import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE
from .security import decode_token, verify_token_type

# Bearer scheme that doesn't fail on a missing header; cookies are the fallback
security_optional = HTTPBearer(auto_error=False)

TokenType = Literal["access", "refresh"]


def _extract_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
    token_type: TokenType,
) -> Optional[str]:
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    cookie_name = ACCESS_TOKEN_COOKIE if token_type == "access" else REFRESH_TOKEN_COOKIE
    return request.cookies.get(cookie_name)


def _decode_and_validate_token(token: str, expected_type: TokenType) -> str:
    """
    Decode and validate a JWT token, returning the user_id.

    Raises:
        HTTPException: 401 if token is invalid, wrong type, or missing user_id
    """
    invalid_token_msg = (
        ErrorMessages.INVALID_TOKEN
        if expected_type == "access"
        else ErrorMessages.INVALID_REFRESH_TOKEN
    )

    payload = decode_token(token)
    if payload is None:
        raise_unauthorized(invalid_token_msg)

    if not verify_token_type(payload, expected_type):
        raise_unauthorized(ErrorMessages.INVALID_TOKEN_TYPE)

    user_id = payload.get("user_id")
    if not user_id:
        raise_unauthorized(ErrorMessages.INVALID_TOKEN_PAYLOAD)

    return str(user_id)


async def get_user_by_id(db: AsyncSession, user_id: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def _get_user_or_401(db: AsyncSession, user_id: str) -> User:
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise_unauthorized(ErrorMessages.USER_NOT_FOUND_AUTH)
    return user


async def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_optional),
) -> str:
    """
    Resolve the authenticated user's id from the access token alone.

    Used by handlers that load the user themselves (for example with retry).

    Raises:
        HTTPException: 401 if no token is present or it is invalid
    """
    token = _extract_token(request, credentials, "access")
    if not token:
        raise_unauthorized(ErrorMessages.AUTHENTICATION_REQUIRED)
    user_id = _decode_and_validate_token(token, "access")

    # Picked up by the error handlers and error tracking
    request.state.user_id = user_id
    observability.set_user(user_id)
    return user_id


async def get_current_user(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get the current authenticated user.

    Raises:
        HTTPException: 401 if the token is missing or invalid, or the user no
        longer exists
    """
    return await _get_user_or_401(db, user_id)


async def get_current_user_from_refresh_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_optional),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get the current user from a refresh token.

    This is used for the token refresh endpoint.
    """
    token = _extract_token(request, credentials, "refresh")
    if not token:
        raise_unauthorized(ErrorMessages.INVALID_REFRESH_TOKEN)
    user_id = _decode_and_validate_token(token, "refresh")
    return await _get_user_or_401(db, user_id)


async def get_current_user_optional(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_optional),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """
    Get the current authenticated user if a valid token is provided.

    Returns None instead of raising when the token is absent or invalid.
    Used by the catalogue endpoints, which attach per-user progress only
    when the caller is signed in.
    """
    token = _extract_token(request, credentials, "access")
    if not token:
        return None

    payload = decode_token(token)
    if payload is None or not verify_token_type(payload, "access"):
        return None

    user_id = payload.get("user_id")
    if not user_id:
        return None
    return await get_user_by_id(db, str(user_id))

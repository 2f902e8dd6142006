"""
Security utilities for password hashing and JWT token management.
"""
from datetime import timedelta
from typing import Any, Dict, Optional
import uuid

import bcrypt
from jose import JWTError, jwt

from app.core.config import settings
from app.core.datetime_utils import utc_now


def hash_password(password: str) -> str:
    """
    Hash a plain text password using bcrypt.

    Args:
        password: Plain text password to hash

    Returns:
        Hashed password string
    """
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain text password against a bcrypt hash.

    A malformed stored hash counts as a mismatch rather than an error.
    """
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"), hashed_password.encode("utf-8")
        )
    except ValueError:
        return False


def _create_token(
    user_id: str,
    email: str,
    token_type: str,
    expires_delta: timedelta,
) -> str:
    now = utc_now()
    claims = {
        "user_id": user_id,
        "email": email,
        "type": token_type,
        "iat": now,
        "exp": now + expires_delta,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(
    user_id: str, email: str, expires_delta: Optional[timedelta] = None
) -> str:
    """Create a short-lived access token for ``user_id``."""
    return _create_token(
        user_id,
        email,
        "access",
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(
    user_id: str, email: str, expires_delta: Optional[timedelta] = None
) -> str:
    """Create a refresh token for ``user_id``."""
    return _create_token(
        user_id,
        email,
        "refresh",
        expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


def refresh_token_lifetime(remember_me: bool = False) -> timedelta:
    """Refresh token lifetime, extended when the user asked to be remembered."""
    days = (
        settings.REMEMBER_ME_REFRESH_DAYS
        if remember_me
        else settings.REFRESH_TOKEN_EXPIRE_DAYS
    )
    return timedelta(days=days)


def create_token_pair(user_id: str, email: str, remember_me: bool = False) -> Dict[str, str]:
    """
    Issue a fresh access/refresh token pair.

    Returns:
        Dict with ``accessToken`` and ``refreshToken`` keys, matching the
        response body shape.
    """
    return {
        "accessToken": create_access_token(user_id, email),
        "refreshToken": create_refresh_token(
            user_id, email, refresh_token_lifetime(remember_me)
        ),
    }


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and verify a JWT token.

    Returns:
        Decoded token payload if the signature and expiry are valid, else None
    """
    try:
        return jwt.decode(
            token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError:
        return None


def verify_token_type(payload: Dict[str, Any], expected_type: str) -> bool:
    """Check that a decoded payload is an ``access`` or ``refresh`` token as expected."""
    return payload.get("type") == expected_type

"""
Auth cookie helpers.

Browsers authenticate with the ``accessToken`` and ``refreshToken`` cookies;
native clients use the same tokens from the response body as Bearer headers.
"""
from fastapi import Response

from app.core.config import settings

from .security import refresh_token_lifetime

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"


def set_auth_cookies(
    response: Response, tokens: dict[str, str], remember_me: bool = False
) -> None:
    """Attach httpOnly, SameSite=strict token cookies to ``response``."""
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        tokens["accessToken"],
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="strict",
        path="/",
    )
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        tokens["refreshToken"],
        max_age=int(refresh_token_lifetime(remember_me).total_seconds()),
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="strict",
        path="/",
    )


def clear_auth_cookies(response: Response) -> None:
    for name in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE):
        response.delete_cookie(
            name,
            path="/",
            httponly=True,
            secure=settings.COOKIE_SECURE,
            samesite="strict",
        )

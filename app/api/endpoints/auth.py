"""
Authentication endpoints: signup, login, token refresh, logout and profile.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.analytics import AnalyticsTracker, EventType
from app.core.auth import (
    get_current_user_from_refresh_token,
    get_current_user_id,
    get_current_user_optional,
    get_user_by_id,
)
from app.core.auth.cookies import clear_auth_cookies, set_auth_cookies
from app.core.auth.security import create_token_pair, hash_password, verify_password
from app.core.datetime_utils import utc_now
from app.core.db_error_handling import async_handle_db_error
from app.core.error_responses import (
    ErrorMessages,
    raise_conflict,
    raise_unauthorized,
)
from app.core.retry import retry_read
from app.models import User, get_db
from app.schemas.auth import (
    AuthResponse,
    AuthTokens,
    CurrentUserResponse,
    UserLogin,
    UserPreferences,
    UserRegister,
    UserResponse,
)
from app.schemas.common import MessageResponse, SuccessResponse

router = APIRouter()
logger = logging.getLogger(__name__)


def _auth_payload(user: User, tokens: dict[str, str]) -> SuccessResponse[AuthResponse]:
    return SuccessResponse(
        data=AuthResponse(
            user=UserResponse.model_validate(user),
            tokens=AuthTokens.model_validate(tokens),
        )
    )


def _default_preferences(user_data: UserRegister) -> UserPreferences:
    if user_data.preferences is not None:
        return user_data.preferences
    is_mobile = user_data.device_info.is_mobile if user_data.device_info else False
    return UserPreferences(haptic_feedback=is_mobile)


@router.post(
    "/signup",
    response_model=SuccessResponse[AuthResponse],
    status_code=status.HTTP_201_CREATED,
)
async def signup(
    user_data: UserRegister,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a new user account and sign it in.

    Raises:
        HTTPException: 409 if the email is already registered
    """
    existing = await db.execute(select(User.id).where(User.email == user_data.email))
    if existing.scalar_one_or_none() is not None:
        raise_conflict(ErrorMessages.EMAIL_ALREADY_REGISTERED)

    new_user = User(
        email=user_data.email,
        name=user_data.name,
        password_hash=hash_password(user_data.password),
        preferences=_default_preferences(user_data).model_dump(
            by_alias=True, mode="json"
        ),
        last_login_at=utc_now(),
    )

    async with async_handle_db_error(db, "create account"):
        db.add(new_user)
        await db.commit()
        await db.refresh(new_user)

    AnalyticsTracker.track_user_registered(user_id=new_user.id, email=new_user.email)

    tokens = create_token_pair(new_user.id, new_user.email)
    set_auth_cookies(response, tokens)
    return _auth_payload(new_user, tokens)


@router.post("/login", response_model=SuccessResponse[AuthResponse])
async def login(
    credentials: UserLogin,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate with email and password.

    ``rememberMe`` extends the refresh token (and its cookie) lifetime.

    Raises:
        HTTPException: 401 if credentials are invalid
    """
    result = await db.execute(select(User).where(User.email == credentials.email))
    user = result.scalar_one_or_none()

    # Same message for unknown email and wrong password
    if user is None or not verify_password(credentials.password, user.password_hash):
        raise_unauthorized(ErrorMessages.INVALID_CREDENTIALS)

    async with async_handle_db_error(db, "sign in"):
        user.last_login_at = utc_now()
        await db.commit()
        await db.refresh(user)

    AnalyticsTracker.track_user_login(user_id=user.id, email=user.email)

    tokens = create_token_pair(user.id, user.email, remember_me=credentials.remember_me)
    set_auth_cookies(response, tokens, remember_me=credentials.remember_me)
    return _auth_payload(user, tokens)


@router.post("/refresh", response_model=SuccessResponse[AuthResponse])
async def refresh(
    response: Response,
    current_user: User = Depends(get_current_user_from_refresh_token),
):
    """
    Issue a new token pair from a refresh token (Bearer header or cookie).
    """
    AnalyticsTracker.track_event(EventType.TOKEN_REFRESHED, user_id=current_user.id)

    tokens = create_token_pair(current_user.id, current_user.email)
    set_auth_cookies(response, tokens)
    return _auth_payload(current_user, tokens)


@router.post("/logout", response_model=SuccessResponse[MessageResponse])
async def logout(
    response: Response,
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    """
    Clear the auth cookies.

    Tokens are stateless, so a client holding Bearer tokens logs out by
    discarding them. Succeeds whether or not the caller is signed in.
    """
    if current_user is not None:
        AnalyticsTracker.track_event(EventType.USER_LOGOUT, user_id=current_user.id)

    clear_auth_cookies(response)
    return SuccessResponse(data=MessageResponse(message="Logged out successfully"))


@router.get("/me", response_model=SuccessResponse[CurrentUserResponse])
async def get_me(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Return the signed-in user's profile.

    The lookup is retried once on a timeout or transient database error.
    """
    user = await retry_read(db, lambda: get_user_by_id(db, user_id), "load profile")
    if user is None:
        raise_unauthorized(ErrorMessages.USER_NOT_FOUND_AUTH)
    return SuccessResponse(data=CurrentUserResponse(user=UserResponse.model_validate(user)))

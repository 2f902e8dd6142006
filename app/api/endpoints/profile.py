"""
Profile endpoints: preferences, profile edits and password changes.

Every route acts on the signed-in caller only.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.analytics import AnalyticsTracker, EventType
from app.core.auth import get_current_user
from app.core.auth.security import hash_password, verify_password
from app.core.db_error_handling import async_handle_db_error
from app.core.error_responses import ErrorMessages, raise_bad_request
from app.models import User, get_db
from app.schemas.auth import UserPreferences, UserResponse
from app.schemas.common import MessageResponse, SuccessResponse
from app.schemas.profile import (
    PasswordChange,
    PreferencesResponse,
    PreferencesUpdate,
    ProfileUpdate,
    ProfileUserResponse,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/preferences", response_model=SuccessResponse[PreferencesResponse])
async def get_preferences(current_user: User = Depends(get_current_user)):
    """
    Return the caller's preferences, falling back to defaults for any
    key that was never stored.
    """
    preferences = UserPreferences.model_validate(current_user.preferences or {})
    return SuccessResponse(data=PreferencesResponse(preferences=preferences))


@router.put("/preferences", response_model=SuccessResponse[ProfileUserResponse])
async def update_preferences(
    body: PreferencesUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Replace the caller's preference bag.
    """
    async with async_handle_db_error(db, "update preferences"):
        current_user.preferences = body.preferences.model_dump(by_alias=True, mode="json")
        await db.commit()
        await db.refresh(current_user)

    AnalyticsTracker.track_event(
        EventType.PROFILE_UPDATED,
        user_id=current_user.id,
        properties={"fields": ["preferences"]},
    )

    return SuccessResponse(
        data=ProfileUserResponse(
            user=UserResponse.model_validate(current_user),
            message="Preferences updated successfully",
        )
    )


@router.put("", response_model=SuccessResponse[ProfileUserResponse])
async def update_profile(
    body: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Update name, email and profile image.

    Raises:
        HTTPException: 400 if the email belongs to another account
    """
    if body.email != current_user.email:
        taken = await db.execute(
            select(User.id).where(User.email == body.email, User.id != current_user.id)
        )
        if taken.scalar_one_or_none() is not None:
            raise_bad_request(ErrorMessages.EMAIL_IN_USE)

    updates = {"name": body.name, "email": body.email, "profile_image": body.profile_image}
    changed = [field for field, value in updates.items() if getattr(current_user, field) != value]

    async with async_handle_db_error(db, "update profile"):
        for field, value in updates.items():
            setattr(current_user, field, value)
        await db.commit()
        await db.refresh(current_user)

    AnalyticsTracker.track_event(
        EventType.PROFILE_UPDATED,
        user_id=current_user.id,
        properties={"fields": changed},
    )

    return SuccessResponse(
        data=ProfileUserResponse(
            user=UserResponse.model_validate(current_user),
            message="Profile updated successfully",
        )
    )


@router.put("/change-password", response_model=SuccessResponse[MessageResponse])
async def change_password(
    body: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Change the caller's password.

    Issued tokens stay valid until they expire.

    Raises:
        HTTPException: 400 if the current password is wrong or the new one
            equals it
    """
    if not verify_password(body.current_password, current_user.password_hash):
        raise_bad_request(ErrorMessages.INCORRECT_CURRENT_PASSWORD)
    if body.new_password == body.current_password:
        raise_bad_request(ErrorMessages.PASSWORD_UNCHANGED)

    async with async_handle_db_error(db, "change password"):
        current_user.password_hash = hash_password(body.new_password)
        await db.commit()

    AnalyticsTracker.track_event(EventType.PASSWORD_CHANGED, user_id=current_user.id)
    logger.info("Password changed for user %s", current_user.id)

    return SuccessResponse(data=MessageResponse(message="Password changed successfully"))

"""
Test session endpoints: fetch, start, autosave and abandon.

Domain errors raised by the session manager (unknown test, missing session,
out-of-range cursor) are rendered by the application's exception handlers.
"""
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.analytics import AnalyticsTracker
from app.core.auth import get_current_user
from app.core.db_error_handling import async_handle_db_error
from app.core.error_responses import ErrorMessages, raise_bad_request
from app.core.graceful_failure import graceful_failure
from app.core.session_manager import (
    abandon_sessions,
    create_session,
    get_session,
    update_session,
)
from app.models import User, get_db
from app.schemas.common import SuccessResponse
from app.schemas.sessions import (
    ActiveSessionResponse,
    SessionAbandonResponse,
    SessionCreate,
    SessionMutationResponse,
    SessionResponse,
    SessionUpdate,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def _session_patch(payload: SessionUpdate) -> dict[str, Any]:
    """
    Build the session manager patch from the fields the client actually sent.

    Answers and device info are stored in their wire (camelCase) form.
    """
    patch = {
        name: getattr(payload, name)
        for name in payload.model_fields_set
        if name != "session_id"
    }
    if payload.answers is not None and "answers" in patch:
        patch["answers"] = [
            answer.model_dump(by_alias=True, mode="json") for answer in payload.answers
        ]
    if payload.device_info is not None and "device_info" in patch:
        patch["device_info"] = payload.device_info.model_dump(
            by_alias=True, mode="json", exclude_none=True
        )
    return patch


@router.get(
    "/{test_id}/session", response_model=SuccessResponse[ActiveSessionResponse]
)
async def get_active_session(
    test_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Return the caller's active session for a test, if there is one.

    "No active session" is a normal response with ``hasActiveSession`` false.
    """
    async with async_handle_db_error(db, "load session"):
        session = await get_session(db, current_user.id, test_id)

    return SuccessResponse(
        data=ActiveSessionResponse(
            has_active_session=session is not None,
            session=SessionResponse.model_validate(session) if session else None,
        )
    )


@router.post(
    "/{test_id}/session", response_model=SuccessResponse[SessionMutationResponse]
)
async def start_session(
    test_id: str,
    payload: Optional[SessionCreate] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Start a session for a test, or resume the one already in progress.

    Calling this twice returns the same session both times.
    """
    device_info = (
        payload.device_info.model_dump(by_alias=True, mode="json", exclude_none=True)
        if payload and payload.device_info
        else None
    )
    expires_at = payload.expires_at if payload else None

    async with async_handle_db_error(db, "create session"):
        session, reused = await create_session(
            db, current_user.id, test_id, device_info=device_info, expires_at=expires_at
        )

    with graceful_failure("track session start", logger):
        if reused:
            AnalyticsTracker.track_session_resumed(
                current_user.id, session.id, test_id, session.current_question
            )
        else:
            AnalyticsTracker.track_session_started(current_user.id, session.id, test_id)

    message = (
        "Active session already exists" if reused else "Session created successfully"
    )
    return SuccessResponse(
        data=SessionMutationResponse(
            session=SessionResponse.model_validate(session), message=message
        )
    )


@router.patch(
    "/{test_id}/session", response_model=SuccessResponse[SessionMutationResponse]
)
async def autosave_session(
    test_id: str,
    payload: SessionUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Save progress on an active session.

    Only fields present in the body change. Replaying the same body gives
    the same result.
    """
    if not payload.session_id:
        raise_bad_request(ErrorMessages.SESSION_ID_REQUIRED)

    async with async_handle_db_error(db, "save progress"):
        session = await update_session(
            db,
            payload.session_id,
            current_user.id,
            test_id,
            _session_patch(payload),
        )

    return SuccessResponse(
        data=SessionMutationResponse(
            session=SessionResponse.model_validate(session),
            message="Progress saved successfully",
        )
    )


@router.delete(
    "/{test_id}/session", response_model=SuccessResponse[SessionAbandonResponse]
)
async def abandon_session(
    test_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Discard every unfinished session the caller has for a test.

    Succeeds with ``deletedCount`` 0 when there was nothing to discard.
    """
    async with async_handle_db_error(db, "clear session"):
        deleted_count = await abandon_sessions(db, current_user.id, test_id)

    with graceful_failure("track session abandon", logger):
        AnalyticsTracker.track_session_abandoned(current_user.id, test_id, deleted_count)

    return SuccessResponse(
        data=SessionAbandonResponse(
            deleted_count=deleted_count, message="Session cleared successfully"
        )
    )

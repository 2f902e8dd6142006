"""
Test submission endpoint.
"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.analytics import AnalyticsTracker
from app.core.auth import get_current_user
from app.core.db_error_handling import async_handle_db_error
from app.core.graceful_failure import graceful_failure
from app.core.submission import submit_test
from app.models import User, get_db
from app.schemas.common import SuccessResponse
from app.schemas.results import (
    ResultResponse,
    ResultTestInfo,
    SubmitRequest,
    SubmitResponse,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/{test_id}/submit",
    response_model=SuccessResponse[SubmitResponse],
    status_code=status.HTTP_201_CREATED,
)
async def submit(
    test_id: str,
    submission: SubmitRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Score a completed attempt and store the result.

    The matching session (``sessionId``) is completed in the same
    transaction as the result insert.

    Raises:
        404 if the test does not exist or is inactive; 400 with
        ``missingQuestions`` if a required question is unanswered; 400 if
        ``timeSpent`` exceeds the time limit.
    """
    answers = [a.model_dump(by_alias=True, mode="json") for a in submission.answers]
    device_info = (
        submission.device_info.model_dump(by_alias=True, mode="json", exclude_none=True)
        if submission.device_info
        else None
    )

    async with async_handle_db_error(db, "submit test"):
        outcome = await submit_test(
            db,
            current_user,
            test_id,
            answers,
            submission.time_spent,
            device_info=device_info,
            session_id=submission.session_id,
        )

    result = outcome.result
    with graceful_failure("track test completion", logger):
        AnalyticsTracker.track_test_completed(
            user_id=current_user.id,
            result_id=result.id,
            test_id=test_id,
            score=result.score,
            percentile=result.percentile,
            time_spent=result.time_spent,
        )

    return SuccessResponse(
        data=SubmitResponse(
            result=ResultResponse.model_validate(result),
            test=ResultTestInfo.model_validate(outcome.test),
            message="Test submitted successfully",
        )
    )

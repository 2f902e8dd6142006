"""
Personal dashboard endpoint.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user_id, get_user_by_id
from app.core.datetime_utils import utc_now
from app.core.error_responses import ErrorMessages, raise_unauthorized
from app.core.retry import retry_read
from app.models import SessionState, Test, TestResult, TestSession, get_db
from app.schemas.common import SuccessResponse
from app.schemas.dashboard import (
    DashboardActiveSession,
    DashboardRecentResult,
    DashboardSummary,
    DashboardUser,
    PersonalDashboardResponse,
)

router = APIRouter()
logger = logging.getLogger(__name__)

RECENT_RESULTS_LIMIT = 5


async def _load_dashboard(db: AsyncSession, user_id: str) -> PersonalDashboardResponse:
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise_unauthorized(ErrorMessages.USER_NOT_FOUND_AUTH)

    summary_row = (
        await db.execute(
            select(
                func.count(TestResult.id).label("completed_tests"),
                func.avg(TestResult.score).label("average_score"),
                func.max(TestResult.score).label("best_score"),
                func.sum(TestResult.time_spent).label("total_time_spent"),
            ).where(TestResult.user_id == user_id)
        )
    ).one()
    summary = DashboardSummary.model_validate(dict(summary_row._mapping))

    session_rows = await db.execute(
        select(TestSession, Test)
        .join(Test, TestSession.test_id == Test.id)
        .where(
            TestSession.user_id == user_id,
            TestSession.status == SessionState.ACTIVE,
            TestSession.expires_at > utc_now(),
        )
        .order_by(TestSession.last_activity.desc())
    )
    active_sessions = [
        DashboardActiveSession(
            id=session.id,
            test_id=test.id,
            test_title=test.title,
            current_question=session.current_question,
            question_count=len(test.questions or []),
            time_spent=session.time_spent,
            last_activity=session.last_activity,
            expires_at=session.expires_at,
        )
        for session, test in session_rows.all()
    ]

    result_rows = await db.execute(
        select(TestResult, Test.title)
        .join(Test, TestResult.test_id == Test.id)
        .where(TestResult.user_id == user_id)
        .order_by(TestResult.completed_at.desc())
        .limit(RECENT_RESULTS_LIMIT)
    )
    recent_results = [
        DashboardRecentResult(
            id=result.id,
            test_id=result.test_id,
            test_title=title,
            score=result.score,
            percentile=result.percentile,
            completed_at=result.completed_at,
        )
        for result, title in result_rows.all()
    ]

    return PersonalDashboardResponse(
        user_info=DashboardUser.model_validate(user),
        completed_tests=summary.completed_tests,
        average_score=summary.average_score,
        best_score=summary.best_score,
        total_time_spent=summary.total_time_spent,
        active_sessions=active_sessions,
        recent_results=recent_results,
    )


@router.get("/personal", response_model=SuccessResponse[PersonalDashboardResponse])
async def personal_dashboard(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Summary of the caller's activity: totals, unfinished sessions and the
    most recent results.

    The whole read is retried once on a timeout or transient database error.
    """
    dashboard = await retry_read(
        db, lambda: _load_dashboard(db, user_id), "load dashboard"
    )
    return SuccessResponse(data=dashboard)

"""
Test catalogue endpoints.

Both endpoints require a signed-in caller, who also gets their own progress
on each test.
"""
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.core.datetime_utils import utc_now
from app.core.db_error_handling import async_handle_db_error
from app.core.session_manager import find_active_session, get_active_test
from app.models import SessionState, Test, TestResult, TestSession, User, get_db
from app.schemas.common import Pagination, SuccessResponse
from app.schemas.sessions import SessionResponse
from app.schemas.tests import (
    DEFAULT_TESTS_PAGE_SIZE,
    MAX_TESTS_PAGE_SIZE,
    CatalogueProgress,
    PreviousResult,
    QuestionResponse,
    TestDetail,
    TestDetailProgress,
    TestDetailResponse,
    TestListItem,
    TestListResponse,
    TestStatistics,
)
from libs.domain_types import TestDifficulty

router = APIRouter()
logger = logging.getLogger(__name__)

RECENT_RESULTS_LIMIT = 5


def _summary_fields(test: Test) -> dict[str, Any]:
    return {
        "id": test.id,
        "title": test.title,
        "description": test.description,
        "category": test.category,
        "difficulty": test.difficulty,
        "tags": test.tags,
        "time_limit": test.time_limit,
        "is_mobile_optimized": test.is_mobile_optimized,
        "question_count": len(test.questions or []),
        "created_at": test.created_at,
    }


async def _completion_counts(db: AsyncSession, test_ids: list[str]) -> dict[str, int]:
    if not test_ids:
        return {}
    rows = await db.execute(
        select(TestResult.test_id, func.count(TestResult.id))
        .where(TestResult.test_id.in_(test_ids))
        .group_by(TestResult.test_id)
    )
    return {test_id: count for test_id, count in rows.all()}


async def _catalogue_progress(
    db: AsyncSession, user_id: str, test_ids: list[str]
) -> dict[str, CatalogueProgress]:
    """Latest result and active session per test for one user."""
    if not test_ids:
        return {}

    results = await db.execute(
        select(TestResult)
        .where(TestResult.user_id == user_id, TestResult.test_id.in_(test_ids))
        .order_by(TestResult.completed_at.desc())
    )
    latest: dict[str, TestResult] = {}
    for result in results.scalars():
        latest.setdefault(result.test_id, result)

    sessions = await db.execute(
        select(TestSession)
        .where(
            TestSession.user_id == user_id,
            TestSession.test_id.in_(test_ids),
            TestSession.status == SessionState.ACTIVE,
            TestSession.expires_at > utc_now(),
        )
        .order_by(TestSession.created_at.desc())
    )
    active: dict[str, TestSession] = {}
    for session in sessions.scalars():
        active.setdefault(session.test_id, session)

    progress = {}
    for test_id in test_ids:
        result = latest.get(test_id)
        session = active.get(test_id)
        progress[test_id] = CatalogueProgress(
            has_completed=result is not None,
            last_score=result.score if result else None,
            last_completed_at=result.completed_at if result else None,
            has_active_session=session is not None,
            current_question=session.current_question if session else None,
            session_time_spent=session.time_spent if session else None,
            last_activity=session.last_activity if session else None,
        )
    return progress


async def load_test_statistics(db: AsyncSession, test_id: str) -> TestStatistics:
    """Aggregate statistics over every result recorded for a test."""
    row = (
        await db.execute(
            select(
                func.count(TestResult.id).label("total_completions"),
                func.avg(TestResult.score).label("average_score"),
                func.avg(TestResult.time_spent).label("average_time"),
                func.max(TestResult.score).label("highest_score"),
                func.min(TestResult.score).label("lowest_score"),
            ).where(TestResult.test_id == test_id)
        )
    ).one()
    return TestStatistics.model_validate(dict(row._mapping))


async def _detail_progress(
    db: AsyncSession, user_id: str, test_id: str
) -> TestDetailProgress:
    recent = await db.execute(
        select(TestResult)
        .where(TestResult.user_id == user_id, TestResult.test_id == test_id)
        .order_by(TestResult.completed_at.desc())
        .limit(RECENT_RESULTS_LIMIT)
    )
    previous_results = [PreviousResult.model_validate(r) for r in recent.scalars()]

    best_score, average_score, total_attempts = (
        await db.execute(
            select(
                func.max(TestResult.score),
                func.avg(TestResult.score),
                func.count(TestResult.id),
            ).where(TestResult.user_id == user_id, TestResult.test_id == test_id)
        )
    ).one()

    session = await find_active_session(db, user_id, test_id)
    return TestDetailProgress(
        previous_results=previous_results,
        best_score=best_score,
        average_score=round(float(average_score), 2) if average_score is not None else None,
        total_attempts=total_attempts or 0,
        has_active_session=session is not None,
        active_session=SessionResponse.model_validate(session) if session else None,
    )


@router.get("", response_model=SuccessResponse[TestListResponse])
async def list_tests(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_TESTS_PAGE_SIZE, ge=1, le=MAX_TESTS_PAGE_SIZE),
    category: Optional[str] = Query(None),
    difficulty: Optional[TestDifficulty] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    mobile_optimized: Optional[bool] = Query(None, alias="mobileOptimized"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    List active tests, mobile-optimized and newest first.

    ``search`` matches the title or description, case-insensitively.
    """
    conditions = [Test.is_active.is_(True)]
    if category:
        conditions.append(Test.category == category)
    if difficulty:
        conditions.append(Test.difficulty == difficulty)
    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(or_(Test.title.ilike(pattern), Test.description.ilike(pattern)))
    if mobile_optimized is not None:
        conditions.append(Test.is_mobile_optimized.is_(mobile_optimized))

    async with async_handle_db_error(db, "load tests"):
        total_count = await db.scalar(select(func.count(Test.id)).where(*conditions))
        rows = await db.execute(
            select(Test)
            .where(*conditions)
            .order_by(Test.is_mobile_optimized.desc(), Test.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        tests = rows.scalars().all()

        test_ids = [t.id for t in tests]
        counts = await _completion_counts(db, test_ids)
        progress = await _catalogue_progress(db, current_user.id, test_ids)

    items = [
        TestListItem(
            **_summary_fields(test),
            completion_count=counts.get(test.id, 0),
            user_progress=progress.get(test.id),
        )
        for test in tests
    ]
    return SuccessResponse(
        data=TestListResponse(
            tests=items,
            pagination=Pagination.build(page, limit, total_count or 0),
        )
    )


@router.get("/{test_id}", response_model=SuccessResponse[TestDetailResponse])
async def get_test(
    test_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Return a test with its questions and completion statistics.

    Option correctness is never included.
    """
    async with async_handle_db_error(db, "load test"):
        test = await get_active_test(db, test_id)
        statistics = await load_test_statistics(db, test_id)
        user_progress = await _detail_progress(db, current_user.id, test_id)

    detail = TestDetail(
        **_summary_fields(test),
        questions=[QuestionResponse.model_validate(q) for q in test.questions or []],
    )
    return SuccessResponse(
        data=TestDetailResponse(
            test=detail, user_progress=user_progress, statistics=statistics
        )
    )

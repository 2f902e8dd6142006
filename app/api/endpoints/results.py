"""
Result history endpoints.
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.core.auth import get_current_user
from app.core.datetime_utils import ensure_timezone_aware
from app.core.db_error_handling import async_handle_db_error
from app.core.error_responses import ErrorMessages, raise_not_found
from app.models import TestResult, User, get_db
from app.schemas.common import Pagination, SuccessResponse
from app.schemas.results import (
    DEFAULT_RESULTS_PAGE_SIZE,
    MAX_RESULTS_PAGE_SIZE,
    ResultDetail,
    ResultDetailResponse,
    ResultListResponse,
    ResultStatistics,
    ResultWithTest,
)

router = APIRouter()
logger = logging.getLogger(__name__)


async def load_result_statistics(db: AsyncSession, user_id: str) -> ResultStatistics:
    """Aggregate score and time statistics over all of a user's results."""
    row = (
        await db.execute(
            select(
                func.count(TestResult.id).label("total_tests"),
                func.avg(TestResult.score).label("average_score"),
                func.avg(TestResult.time_spent).label("average_time"),
                func.max(TestResult.score).label("best_score"),
                func.min(TestResult.score).label("worst_score"),
            ).where(TestResult.user_id == user_id)
        )
    ).one()
    return ResultStatistics.model_validate(dict(row._mapping))


@router.get("", response_model=SuccessResponse[ResultListResponse])
async def list_results(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_RESULTS_PAGE_SIZE, ge=1),
    test_id: Optional[str] = Query(None, alias="testId"),
    from_date: Optional[datetime] = Query(None, alias="fromDate"),
    to_date: Optional[datetime] = Query(None, alias="toDate"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Page through the caller's results, newest first.

    ``statistics`` always covers every result the caller has, regardless of
    the filters applied to the page.

    ``limit`` above MAX_RESULTS_PAGE_SIZE is clamped, not rejected.
    """
    limit = min(limit, MAX_RESULTS_PAGE_SIZE)
    conditions = [TestResult.user_id == current_user.id]
    if test_id:
        conditions.append(TestResult.test_id == test_id)
    if from_date:
        conditions.append(TestResult.completed_at >= ensure_timezone_aware(from_date))
    if to_date:
        conditions.append(TestResult.completed_at <= ensure_timezone_aware(to_date))

    async with async_handle_db_error(db, "load results"):
        total_count = await db.scalar(
            select(func.count(TestResult.id)).where(*conditions)
        )
        rows = await db.execute(
            select(TestResult)
            .options(joinedload(TestResult.test))
            .where(*conditions)
            .order_by(TestResult.completed_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        results = rows.scalars().all()
        statistics = await load_result_statistics(db, current_user.id)

    return SuccessResponse(
        data=ResultListResponse(
            results=[ResultWithTest.model_validate(r) for r in results],
            pagination=Pagination.build(page, limit, total_count or 0),
            statistics=statistics,
        )
    )


@router.get("/{result_id}", response_model=SuccessResponse[ResultDetailResponse])
async def get_result(
    result_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Return one of the caller's results with its answers.

    Results owned by someone else are reported as not found.
    """
    async with async_handle_db_error(db, "load result"):
        row = await db.execute(
            select(TestResult)
            .options(joinedload(TestResult.test))
            .where(TestResult.id == result_id, TestResult.user_id == current_user.id)
        )
        result = row.scalar_one_or_none()

    if result is None:
        raise_not_found(ErrorMessages.RESULT_NOT_FOUND)

    return SuccessResponse(
        data=ResultDetailResponse(result=ResultDetail.model_validate(result))
    )

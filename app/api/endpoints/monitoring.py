"""
Client monitoring endpoints: batched error/metric/analytics ingestion and a
database health check.
"""
import logging
from typing import Any, Callable, Optional, Type, TypeVar

from fastapi import APIRouter, Depends
from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.analytics import AnalyticsTracker, EventType
from app.core.auth import get_current_user_optional
from app.core.config import settings
from app.core.datetime_utils import utc_now
from app.core.db_error_handling import async_handle_db_error
from app.core.error_responses import (
    ErrorMessages,
    raise_bad_request,
    raise_service_unavailable,
)
from app.core.graceful_failure import graceful_failure
from app.models import AnalyticsEvent, ErrorLog, PerformanceMetric, User, get_db
from app.ratelimit import monitoring_rate_limit
from app.schemas.common import SuccessResponse
from app.schemas.monitoring import (
    AnalyticsReport,
    ErrorReport,
    MonitoringBatch,
    MonitoringHealthResponse,
    MonitoringIngestResponse,
    MonitoringItem,
    PerformanceReport,
    ProcessedCounts,
)

router = APIRouter()
logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT", bound=MonitoringItem)


def _valid_items(raw_items: list[dict[str, Any]], schema: Type[ItemT]) -> list[ItemT]:
    """Validate items one by one, dropping the ones that fail."""
    valid = []
    for raw in raw_items:
        try:
            valid.append(schema.model_validate(raw))
        except ValidationError as e:
            logger.debug(f"Skipping invalid {schema.__name__}: {e.error_count()} errors")
    return valid


def _error_row(item: ErrorReport, user_id: Optional[str]) -> ErrorLog:
    context = {"sessionId": item.session_id, "additionalData": item.additional_data}
    return ErrorLog(
        user_id=user_id,
        message=item.message,
        stack=item.stack,
        url=item.url,
        user_agent=item.user_agent,
        level=item.level,
        context={k: v for k, v in context.items() if v is not None},
        occurred_at=item.occurred_at,
    )


def _metric_row(item: PerformanceReport, user_id: Optional[str]) -> PerformanceMetric:
    return PerformanceMetric(
        user_id=user_id,
        name=item.name,
        value=item.value,
        url=item.url,
        user_agent=item.user_agent,
        recorded_at=item.occurred_at,
    )


def _analytics_row(item: AnalyticsReport, user_id: Optional[str]) -> AnalyticsEvent:
    properties = dict(item.properties)
    if item.session_id:
        properties["sessionId"] = item.session_id
    return AnalyticsEvent(
        user_id=user_id,
        event=item.event,
        properties=properties,
        url=item.url,
        occurred_at=item.occurred_at,
    )


_BUILDERS: list[tuple[str, Type[MonitoringItem], Callable[..., Any]]] = [
    ("errors", ErrorReport, _error_row),
    ("metrics", PerformanceReport, _metric_row),
    ("analytics", AnalyticsReport, _analytics_row),
]


@router.post(
    "",
    response_model=SuccessResponse[MonitoringIngestResponse],
    dependencies=[Depends(monitoring_rate_limit)],
)
async def ingest(
    batch: MonitoringBatch,
    current_user: Optional[User] = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
):
    """
    Store a batch of client-side errors, performance samples and analytics
    events.

    Invalid items are skipped and not counted. Rate limited per client IP.

    Raises:
        HTTPException: 400 if any list exceeds the batch size, 429 when
        rate limited
    """
    if batch.exceeds(settings.MONITORING_MAX_BATCH):
        raise_bad_request(ErrorMessages.BATCH_TOO_LARGE)

    user_id = current_user.id if current_user else None
    processed: dict[str, int] = {}

    async with async_handle_db_error(db, "store monitoring data"):
        for field_name, schema, build_row in _BUILDERS:
            items = _valid_items(getattr(batch, field_name), schema)
            db.add_all([build_row(item, user_id) for item in items])
            processed[field_name] = len(items)
        await db.commit()

    with graceful_failure("track monitoring batch", logger):
        AnalyticsTracker.track_event(
            EventType.CLIENT_BATCH_INGESTED, user_id=user_id, properties=processed
        )

    return SuccessResponse(
        data=MonitoringIngestResponse(processed=ProcessedCounts(**processed))
    )


@router.get("", response_model=SuccessResponse[MonitoringHealthResponse])
async def monitoring_health(db: AsyncSession = Depends(get_db)):
    """
    Report whether the monitoring store is reachable.

    Raises:
        HTTPException: 503 if the database does not answer
    """
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Monitoring health check failed: {type(e).__name__}: {e}")
        raise_service_unavailable(ErrorMessages.SERVICE_UNHEALTHY, status="unhealthy")

    return SuccessResponse(
        data=MonitoringHealthResponse(status="healthy", timestamp=utc_now())
    )

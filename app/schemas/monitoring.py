"""
Pydantic schemas for the client monitoring ingestion endpoint.

The client batches errors, performance samples and analytics events. The
batch envelope is validated as a whole; each item is validated on its own so
that one malformed item is skipped instead of failing the batch.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from app.core.config import settings
from app.core.datetime_utils import utc_now
from app.core.validators import StringSanitizer

from .common import CamelModel

MAX_MESSAGE_LENGTH = 1000
MAX_STACK_LENGTH = 5000
MAX_URL_LENGTH = 500
MAX_NAME_LENGTH = 100
MAX_METRIC_VALUE = 1_000_000


class MonitoringItem(CamelModel):
    """Fields shared by every reported item."""

    timestamp: int = Field(..., gt=0, description="Client time, epoch milliseconds")
    session_id: Optional[str] = Field(None, max_length=100)
    url: Optional[str] = None
    user_agent: Optional[str] = None

    @field_validator("timestamp")
    @classmethod
    def not_in_future(cls, v: int) -> int:
        limit_ms = (utc_now().timestamp() + settings.MONITORING_CLOCK_SKEW_SECONDS) * 1000
        if v > limit_ms:
            raise ValueError("timestamp is in the future")
        return v

    @field_validator("url", "user_agent")
    @classmethod
    def truncate_url(cls, v: Optional[str]) -> Optional[str]:
        return StringSanitizer.truncate(v, MAX_URL_LENGTH)

    @property
    def occurred_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc)


class ErrorReport(MonitoringItem):
    message: str = Field(..., min_length=1)
    stack: Optional[str] = None
    level: str = Field("error", max_length=20)
    additional_data: Optional[Dict[str, Any]] = None

    @field_validator("message")
    @classmethod
    def truncate_message(cls, v: str) -> str:
        return StringSanitizer.truncate(v, MAX_MESSAGE_LENGTH)

    @field_validator("stack")
    @classmethod
    def truncate_stack(cls, v: Optional[str]) -> Optional[str]:
        return StringSanitizer.truncate(v, MAX_STACK_LENGTH)


class PerformanceReport(MonitoringItem):
    name: str = Field(..., min_length=1)
    value: float = Field(..., ge=0, lt=MAX_METRIC_VALUE)

    @field_validator("name")
    @classmethod
    def truncate_name(cls, v: str) -> str:
        return StringSanitizer.truncate(v, MAX_NAME_LENGTH)


class AnalyticsReport(MonitoringItem):
    event: str = Field(..., min_length=1)
    properties: Dict[str, Any] = {}

    @field_validator("event")
    @classmethod
    def truncate_event(cls, v: str) -> str:
        return StringSanitizer.truncate(v, MAX_NAME_LENGTH)


class MonitoringBatch(CamelModel):
    """Batch envelope. Items stay raw until validated one by one."""

    errors: List[Dict[str, Any]] = []
    metrics: List[Dict[str, Any]] = []
    analytics: List[Dict[str, Any]] = []

    def exceeds(self, max_items: int) -> bool:
        return any(
            len(items) > max_items for items in (self.errors, self.metrics, self.analytics)
        )


class ProcessedCounts(CamelModel):
    errors: int = 0
    metrics: int = 0
    analytics: int = 0


class MonitoringIngestResponse(CamelModel):
    processed: ProcessedCounts


class MonitoringHealthResponse(CamelModel):
    status: str
    timestamp: datetime
    service: str = "monitoring"

"""
Pydantic schemas for submission and result history endpoints.
"""
from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field, field_validator

from libs.domain_types import SubmissionChannel, TestDifficulty

from .common import CamelModel, DeviceInfo, Pagination, round_seconds
from .sessions import Answer

DEFAULT_RESULTS_PAGE_SIZE = 10
MAX_RESULTS_PAGE_SIZE = 50


class SubmitRequest(CamelModel):
    """Schema for submitting a completed test."""

    answers: List[Answer] = Field(..., description="Final answer list")
    time_spent: int = Field(..., ge=0, description="Total seconds spent")
    device_info: Optional[DeviceInfo] = None
    session_id: Optional[str] = Field(
        None, description="Session to mark completed, if any"
    )

    @field_validator("time_spent", mode="before")
    @classmethod
    def round_time_spent(cls, v):
        return round_seconds(v)


class CategoryScoreResponse(CamelModel):
    category: str
    score: float
    max_score: int = 100


class AnalysisResponse(CamelModel):
    """Strengths, weaknesses and per-category breakdown of a result."""

    strengths: List[str] = []
    weaknesses: List[str] = []
    recommendations: List[str] = []
    category_scores: List[CategoryScoreResponse] = []
    overall_score: float = 0
    percentile_rank: int = 50


class ResultTestInfo(CamelModel):
    id: str
    title: str
    category: Optional[str] = None
    difficulty: Optional[TestDifficulty] = None


class ResultResponse(CamelModel):
    """Schema for a stored test result."""

    id: str
    score: float
    percentile: int
    completed_at: datetime
    time_spent: int
    analysis: Optional[AnalysisResponse] = None
    submitted_from: SubmissionChannel


class ResultWithTest(ResultResponse):
    test: ResultTestInfo


class ResultDetail(ResultWithTest):
    answers: List[dict]
    device_info: Optional[dict] = None
    network_type: Optional[str] = None


class SubmitResponse(CamelModel):
    """Payload returned after a successful submission."""

    result: ResultResponse
    test: ResultTestInfo
    message: str


class AggregateRow(CamelModel):
    """
    Base for aggregate query rows.

    SQL aggregates come back as ``None`` over an empty set and as ``Decimal``
    on PostgreSQL; numeric fields are coerced here so callers only ever see
    plain numbers.
    """

    @field_validator("*", mode="before")
    @classmethod
    def null_aggregate_is_zero(cls, v: Any) -> Any:
        return 0 if v is None else v


class ResultStatistics(AggregateRow):
    """Aggregates over all of a user's results."""

    total_tests: int = 0
    average_score: float = 0
    average_time: float = 0
    best_score: float = 0
    worst_score: float = 0

    @field_validator("average_score", "average_time")
    @classmethod
    def round_average(cls, v: float) -> float:
        return round(v, 2)


class ResultListResponse(CamelModel):
    results: List[ResultWithTest]
    pagination: Pagination
    statistics: ResultStatistics


class ResultDetailResponse(CamelModel):
    result: ResultDetail

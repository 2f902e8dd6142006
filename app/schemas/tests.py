"""
Pydantic schemas for the test catalogue endpoints.
"""
from datetime import datetime
from typing import List, Optional, Union

from pydantic import Field, field_validator

from libs.domain_types import QuestionType, TestDifficulty

from .common import CamelModel, Pagination
from .results import AggregateRow
from .sessions import SessionResponse

DEFAULT_TESTS_PAGE_SIZE = 10
MAX_TESTS_PAGE_SIZE = 50


class QuestionOptionResponse(CamelModel):
    """Answer option as shown to the test taker. Correctness is never exposed."""

    id: str
    text: str
    value: Union[str, int, float]


class QuestionResponse(CamelModel):
    id: str
    text: str
    type: QuestionType
    options: List[QuestionOptionResponse] = []
    required: bool = False
    category: Optional[str] = None
    order: Optional[int] = None
    points: Optional[float] = None
    scale: Optional[int] = None


class TestSummary(CamelModel):
    """Catalogue entry for a test."""

    id: str
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    difficulty: Optional[TestDifficulty] = None
    tags: List[str] = []
    time_limit: Optional[int] = Field(None, description="Minutes; null means untimed")
    is_mobile_optimized: bool = True
    question_count: int = 0
    created_at: datetime

    @field_validator("tags", mode="before")
    @classmethod
    def null_tags(cls, v):
        return v or []


class CatalogueProgress(CamelModel):
    """What the current user has done with a catalogue entry."""

    has_completed: bool = False
    last_score: Optional[float] = None
    last_completed_at: Optional[datetime] = None
    has_active_session: bool = False
    current_question: Optional[int] = None
    session_time_spent: Optional[int] = None
    last_activity: Optional[datetime] = None


class TestListItem(TestSummary):
    completion_count: int = 0
    user_progress: Optional[CatalogueProgress] = None


class TestListResponse(CamelModel):
    tests: List[TestListItem]
    pagination: Pagination


class TestDetail(TestSummary):
    questions: List[QuestionResponse] = []


class PreviousResult(CamelModel):
    id: str
    score: float
    percentile: int
    completed_at: datetime
    time_spent: int


class TestDetailProgress(CamelModel):
    """The current user's history with one test."""

    previous_results: List[PreviousResult] = []
    best_score: Optional[float] = None
    average_score: Optional[float] = None
    total_attempts: int = 0
    has_active_session: bool = False
    active_session: Optional[SessionResponse] = None


class TestStatistics(AggregateRow):
    """Aggregates over every result recorded for a test."""

    total_completions: int = 0
    average_score: float = 0
    average_time: float = 0
    highest_score: float = 0
    lowest_score: float = 0

    @field_validator("average_score", "average_time")
    @classmethod
    def round_average(cls, v: float) -> float:
        return round(v, 2)


class TestDetailResponse(CamelModel):
    test: TestDetail
    user_progress: Optional[TestDetailProgress] = None
    statistics: TestStatistics

"""
Pydantic schemas for the personal dashboard.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import field_validator

from .common import CamelModel
from .results import AggregateRow


class DashboardUser(CamelModel):
    id: str
    name: str
    email: str
    profile_image: Optional[str] = None
    last_login_at: Optional[datetime] = None


class DashboardSummary(AggregateRow):
    """Aggregate row over the user's results."""

    completed_tests: int = 0
    average_score: float = 0
    best_score: float = 0
    total_time_spent: int = 0

    @field_validator("average_score")
    @classmethod
    def round_average(cls, v: float) -> float:
        return round(v, 2)


class DashboardActiveSession(CamelModel):
    id: str
    test_id: str
    test_title: str
    current_question: int
    question_count: int
    time_spent: int
    last_activity: datetime
    expires_at: datetime


class DashboardRecentResult(CamelModel):
    id: str
    test_id: str
    test_title: str
    score: float
    percentile: int
    completed_at: datetime


class PersonalDashboardResponse(CamelModel):
    """Everything the home screen shows for the signed-in user."""

    user_info: DashboardUser
    completed_tests: int
    average_score: float
    best_score: float
    total_time_spent: int
    active_sessions: List[DashboardActiveSession]
    recent_results: List[DashboardRecentResult]

"""
Models package for the aptitude test backend.
"""
from .base import Base, async_engine, AsyncSessionLocal, get_db
from .models import (
    User,
    Test,
    TestSession,
    TestResult,
    ErrorLog,
    PerformanceMetric,
    AnalyticsEvent,
    QuestionType,
    SessionState,
    SubmissionChannel,
    TestDifficulty,
)

__all__ = [
    "Base",
    "async_engine",
    "AsyncSessionLocal",
    "get_db",
    "User",
    "Test",
    "TestSession",
    "TestResult",
    "ErrorLog",
    "PerformanceMetric",
    "AnalyticsEvent",
    "QuestionType",
    "SessionState",
    "SubmissionChannel",
    "TestDifficulty",
]

"""
Database models for the aptitude test application.
"""
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from app.core.datetime_utils import utc_now
from libs.domain_types import (
    QuestionType,
    SessionState,
    SubmissionChannel,
    TestDifficulty,
)

from .base import Base
from .types import UTCDateTime

__all__ = [
    "QuestionType",
    "SessionState",
    "SubmissionChannel",
    "TestDifficulty",
    "User",
    "Test",
    "TestSession",
    "TestResult",
    "ErrorLog",
    "PerformanceMetric",
    "AnalyticsEvent",
]


def _new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """User model for authentication and profile."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    password_hash = Column(String(255), nullable=False)
    profile_image = Column(String(500))
    # Preference bag: language, theme, notifications, testReminders,
    # hapticFeedback, autoSave
    preferences = Column(JSON)
    created_at = Column(UTCDateTime(), default=utc_now, nullable=False)
    updated_at = Column(
        UTCDateTime(), default=utc_now, onupdate=utc_now, nullable=False
    )
    last_login_at = Column(UTCDateTime())

    # Relationships
    test_sessions = relationship(
        "TestSession", back_populates="user", cascade="all, delete-orphan"
    )
    test_results = relationship(
        "TestResult", back_populates="user", cascade="all, delete-orphan"
    )


class Test(Base):
    """An administrable test with its ordered question list."""

    __tablename__ = "tests"

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    category = Column(String(100), index=True)
    difficulty = Column(Enum(TestDifficulty), default=TestDifficulty.MEDIUM)
    tags = Column(JSON)
    # Ordered list of question dicts: id, text, type, options, required,
    # category, order, points, scale
    questions = Column(JSON, nullable=False, default=list)
    time_limit = Column(Integer)  # minutes, NULL means untimed
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    is_mobile_optimized = Column(Boolean, default=True, nullable=False)
    created_at = Column(UTCDateTime(), default=utc_now, nullable=False)
    updated_at = Column(
        UTCDateTime(), default=utc_now, onupdate=utc_now, nullable=False
    )

    # Relationships
    sessions = relationship(
        "TestSession", back_populates="test", cascade="all, delete-orphan"
    )
    results = relationship(
        "TestResult", back_populates="test", cascade="all, delete-orphan"
    )


class TestSession(Base):
    """A user's in-progress attempt at a test."""

    __tablename__ = "test_sessions"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    test_id = Column(
        String(36), ForeignKey("tests.id", ondelete="CASCADE"), nullable=False
    )
    status = Column(Enum(SessionState), default=SessionState.ACTIVE, nullable=False)
    current_question = Column(Integer, default=0, nullable=False)
    answers = Column(JSON, nullable=False, default=list)
    time_spent = Column(Integer, default=0, nullable=False)  # seconds
    device_info = Column(JSON)
    last_activity = Column(UTCDateTime(), default=utc_now, nullable=False)
    expires_at = Column(UTCDateTime(), nullable=False)
    created_at = Column(UTCDateTime(), default=utc_now, nullable=False)
    updated_at = Column(
        UTCDateTime(), default=utc_now, onupdate=utc_now, nullable=False
    )

    # Relationships
    user = relationship("User", back_populates="test_sessions")
    test = relationship("Test", back_populates="sessions")

    # Lookups always filter on (user, test, status, expires_at)
    __table_args__ = (
        Index("ix_test_sessions_user_test_status", "user_id", "test_id", "status"),
        Index("ix_test_sessions_expires_at", "expires_at"),
    )


class TestResult(Base):
    """Immutable record of a finished, scored attempt."""

    __tablename__ = "test_results"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    test_id = Column(
        String(36), ForeignKey("tests.id", ondelete="CASCADE"), nullable=False
    )
    answers = Column(JSON, nullable=False)
    score = Column(Float, nullable=False)  # 0-100
    percentile = Column(Integer, nullable=False)  # 0-100, snapshot at submission
    time_spent = Column(Integer, nullable=False)  # seconds
    device_info = Column(JSON)
    # strengths, weaknesses, recommendations, categoryScores, overallScore,
    # percentileRank
    analysis = Column(JSON)
    submitted_from = Column(Enum(SubmissionChannel), nullable=False)
    network_type = Column(String(50))
    completed_at = Column(UTCDateTime(), default=utc_now, nullable=False)

    # Relationships
    user = relationship("User", back_populates="test_results")
    test = relationship("Test", back_populates="results")

    __table_args__ = (
        Index("ix_test_results_user_completed", "user_id", "completed_at"),
        Index("ix_test_results_test_score", "test_id", "score"),
    )


class ErrorLog(Base):
    """Client-side error reported through the monitoring endpoint."""

    __tablename__ = "error_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"))
    message = Column(String(1000), nullable=False)
    stack = Column(Text)
    url = Column(String(500))
    user_agent = Column(String(500))
    level = Column(String(20), default="error", nullable=False)
    context = Column(JSON)
    occurred_at = Column(UTCDateTime(), nullable=False)
    received_at = Column(UTCDateTime(), default=utc_now, nullable=False)


class PerformanceMetric(Base):
    """Client-side performance sample (web vitals, load timings)."""

    __tablename__ = "performance_metrics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"))
    name = Column(String(100), nullable=False, index=True)
    value = Column(Float, nullable=False)
    url = Column(String(500))
    user_agent = Column(String(500))
    recorded_at = Column(UTCDateTime(), nullable=False)
    received_at = Column(UTCDateTime(), default=utc_now, nullable=False)


class AnalyticsEvent(Base):
    """Client-side analytics event."""

    __tablename__ = "analytics_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"))
    event = Column(String(100), nullable=False, index=True)
    properties = Column(JSON)
    url = Column(String(500))
    occurred_at = Column(UTCDateTime(), nullable=False)
    received_at = Column(UTCDateTime(), default=utc_now, nullable=False)

"""Shared domain types for the aptitude test services.

This package is the single source of truth for domain enums used across
the backend models, request/response schemas, and (indirectly via OpenAPI)
the mobile web client.

Usage:
    from libs.domain_types import QuestionType, SessionState
"""

import enum


class QuestionType(str, enum.Enum):
    """Types of test questions."""

    MULTIPLE_CHOICE = "multiple-choice"
    RATING = "rating"
    TEXT = "text"
    BOOLEAN = "boolean"


class TestDifficulty(str, enum.Enum):
    """Difficulty levels for tests."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class SessionState(str, enum.Enum):
    """Persisted state of a test-taking session.

    A deleted (abandoned) session has no row, so it has no member here.
    """

    ACTIVE = "active"
    COMPLETED = "completed"


class SubmissionChannel(str, enum.Enum):
    """Device class a result was submitted from."""

    MOBILE = "mobile"
    TABLET = "tablet"
    DESKTOP = "desktop"


class Language(str, enum.Enum):
    """User interface language preference."""

    KO = "ko"
    EN = "en"


class Theme(str, enum.Enum):
    """User interface theme preference."""

    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


__all__ = [
    "QuestionType",
    "TestDifficulty",
    "SessionState",
    "SubmissionChannel",
    "Language",
    "Theme",
]

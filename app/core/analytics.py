"""
Analytics and event tracking for monitoring user actions and system events.
"""
import logging
from enum import Enum
from typing import Optional, Dict, Any

from app.core.config import settings
from app.core.datetime_utils import utc_now

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Analytics event types."""

    # Authentication events
    USER_REGISTERED = "user.registered"
    USER_LOGIN = "user.login"
    USER_LOGOUT = "user.logout"
    TOKEN_REFRESHED = "user.token_refreshed"
    PROFILE_UPDATED = "user.profile_updated"
    PASSWORD_CHANGED = "user.password_changed"

    # Test session events
    SESSION_STARTED = "session.started"
    SESSION_RESUMED = "session.resumed"
    SESSION_ABANDONED = "session.abandoned"
    TEST_COMPLETED = "test.completed"

    # Client monitoring
    CLIENT_BATCH_INGESTED = "monitoring.batch_ingested"

    # Performance events
    SLOW_REQUEST = "performance.slow_request"
    API_ERROR = "api.error"

    # Security events
    RATE_LIMIT_EXCEEDED = "security.rate_limit_exceeded"


class AnalyticsTracker:
    """
    Analytics event tracker for logging and monitoring user actions.

    Events are emitted as structured log records; log aggregation turns them
    into dashboards.
    """

    @staticmethod
    def track_event(
        event_type: EventType,
        user_id: Optional[str] = None,
        properties: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Track an analytics event.

        Args:
            event_type: Type of event being tracked
            user_id: Optional user ID associated with the event
            properties: Optional dictionary of event properties

        Example:
            AnalyticsTracker.track_event(
                EventType.TEST_COMPLETED,
                user_id="6f1c...",
                properties={"score": 85.0, "time_spent": 1200}
            )
        """
        event_data = {
            "event": event_type.value,
            "timestamp": utc_now().isoformat(),
            "user_id": user_id,
            "properties": properties or {},
            "environment": settings.ENV,
        }

        logger.info(
            f"Analytics Event: {event_type.value}",
            extra={
                "event_data": event_data,
                "user_id": user_id,
            },
        )

    @staticmethod
    def track_user_registered(user_id: str, email: str) -> None:
        """Track user registration event."""
        AnalyticsTracker.track_event(
            EventType.USER_REGISTERED,
            user_id=user_id,
            properties={"email": email},
        )

    @staticmethod
    def track_user_login(user_id: str, email: str) -> None:
        """Track user login event."""
        AnalyticsTracker.track_event(
            EventType.USER_LOGIN,
            user_id=user_id,
            properties={"email": email},
        )

    @staticmethod
    def track_session_started(user_id: str, session_id: str, test_id: str) -> None:
        """Track creation of a new test session."""
        AnalyticsTracker.track_event(
            EventType.SESSION_STARTED,
            user_id=user_id,
            properties={
                "session_id": session_id,
                "test_id": test_id,
            },
        )

    @staticmethod
    def track_session_resumed(
        user_id: str, session_id: str, test_id: str, current_question: int
    ) -> None:
        """Track a create call that reused an existing active session."""
        AnalyticsTracker.track_event(
            EventType.SESSION_RESUMED,
            user_id=user_id,
            properties={
                "session_id": session_id,
                "test_id": test_id,
                "current_question": current_question,
            },
        )

    @staticmethod
    def track_session_abandoned(user_id: str, test_id: str, deleted_count: int) -> None:
        """Track test abandonment."""
        AnalyticsTracker.track_event(
            EventType.SESSION_ABANDONED,
            user_id=user_id,
            properties={
                "test_id": test_id,
                "deleted_count": deleted_count,
            },
        )

    @staticmethod
    def track_test_completed(
        user_id: str,
        result_id: str,
        test_id: str,
        score: float,
        percentile: int,
        time_spent: int,
    ) -> None:
        """Track test completion."""
        AnalyticsTracker.track_event(
            EventType.TEST_COMPLETED,
            user_id=user_id,
            properties={
                "result_id": result_id,
                "test_id": test_id,
                "score": score,
                "percentile": percentile,
                "time_spent": time_spent,
            },
        )

    @staticmethod
    def track_slow_request(
        method: str, path: str, duration_seconds: float, status_code: int
    ) -> None:
        """Track slow API request."""
        AnalyticsTracker.track_event(
            EventType.SLOW_REQUEST,
            properties={
                "method": method,
                "path": path,
                "duration_seconds": duration_seconds,
                "status_code": status_code,
            },
        )

    @staticmethod
    def track_api_error(
        method: str,
        path: str,
        error_type: str,
        error_message: str,
        user_id: Optional[str] = None,
    ) -> None:
        """Track API error."""
        AnalyticsTracker.track_event(
            EventType.API_ERROR,
            user_id=user_id,
            properties={
                "method": method,
                "path": path,
                "error_type": error_type,
                "error_message": error_message,
            },
        )

    @staticmethod
    def track_rate_limit_exceeded(
        user_identifier: str, endpoint: str, limit: int
    ) -> None:
        """Track rate limit violation."""
        AnalyticsTracker.track_event(
            EventType.RATE_LIMIT_EXCEEDED,
            properties={
                "user_identifier": user_identifier,
                "endpoint": endpoint,
                "limit": limit,
            },
        )

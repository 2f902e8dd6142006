"""
Tests for error message constants and HTTPException builders.
"""
import pytest
from fastapi import HTTPException

from app.core.error_responses import (
    ErrorMessages,
    raise_bad_request,
    raise_conflict,
    raise_not_found,
    raise_server_error,
    raise_service_unavailable,
    raise_too_many_requests,
    raise_unauthorized,
)


class TestErrorMessages:
    """Tests for message templates."""

    def test_current_question_out_of_range(self):
        assert (
            ErrorMessages.current_question_out_of_range(5)
            == "currentQuestion must be between 0 and 4"
        )

    def test_database_operation_failed(self):
        assert (
            ErrorMessages.database_operation_failed("submit test")
            == "Failed to submit test. Please try again later."
        )


class TestBuilders:
    """Tests for raise_* helpers."""

    def test_bad_request_plain(self):
        with pytest.raises(HTTPException) as exc_info:
            raise_bad_request(ErrorMessages.SESSION_ID_REQUIRED)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "Session ID is required"

    def test_bad_request_with_extra_fields(self):
        with pytest.raises(HTTPException) as exc_info:
            raise_bad_request(ErrorMessages.MISSING_REQUIRED_ANSWERS, missingQuestions=["q1"])

        assert exc_info.value.detail == {
            "error": "Missing required answers",
            "missingQuestions": ["q1"],
        }

    def test_unauthorized_sets_www_authenticate(self):
        with pytest.raises(HTTPException) as exc_info:
            raise_unauthorized(ErrorMessages.INVALID_TOKEN)

        assert exc_info.value.status_code == 401
        assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}

    def test_unauthorized_without_header(self):
        with pytest.raises(HTTPException) as exc_info:
            raise_unauthorized(ErrorMessages.INVALID_TOKEN, include_www_authenticate=False)

        assert exc_info.value.headers is None

    def test_not_found_and_conflict(self):
        with pytest.raises(HTTPException) as not_found:
            raise_not_found(ErrorMessages.RESULT_NOT_FOUND)
        with pytest.raises(HTTPException) as conflict:
            raise_conflict(ErrorMessages.EMAIL_ALREADY_REGISTERED)

        assert not_found.value.status_code == 404
        assert conflict.value.status_code == 409

    def test_too_many_requests_with_retry_after(self):
        with pytest.raises(HTTPException) as exc_info:
            raise_too_many_requests(ErrorMessages.RATE_LIMIT_EXCEEDED, retry_after=30)

        assert exc_info.value.status_code == 429
        assert exc_info.value.headers == {"Retry-After": "30"}
        assert exc_info.value.detail["retryAfter"] == 30

    def test_too_many_requests_unknown_retry(self):
        with pytest.raises(HTTPException) as exc_info:
            raise_too_many_requests(ErrorMessages.RATE_LIMIT_EXCEEDED)

        assert exc_info.value.headers is None

    def test_server_error_with_error_id(self):
        with pytest.raises(HTTPException) as exc_info:
            raise_server_error(ErrorMessages.INTERNAL_SERVER_ERROR, error_id="e-1")

        assert exc_info.value.status_code == 500
        assert exc_info.value.detail == {
            "error": "Internal server error",
            "errorId": "e-1",
        }

    def test_service_unavailable(self):
        with pytest.raises(HTTPException) as exc_info:
            raise_service_unavailable(ErrorMessages.SERVICE_UNHEALTHY, status="unhealthy")

        assert exc_info.value.status_code == 503
        assert exc_info.value.detail["status"] == "unhealthy"

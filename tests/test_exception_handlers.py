"""
Tests for the exception handlers registered in main.py.

Every error leaves the API as ``{"success": false, "error": ...}``.
"""
from unittest.mock import patch

import pytest
from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.session_state import (
    CurrentQuestionOutOfRange,
    InvalidSessionTransition,
    SessionEvent,
    SessionLifecycleError,
    SessionNotFoundError,
    TestNotFoundError,
)
from app.core.submission import MissingRequiredAnswers, TimeLimitExceeded
from app.models import SessionState
from tests.conftest import create_test_application


class _Payload(BaseModel):
    count: int


@pytest.fixture
def error_client():
    """App with routes that raise each kind of error."""
    app = create_test_application()
    errors = {
        "test-missing": TestNotFoundError("t1"),
        "session-missing": SessionNotFoundError("s1"),
        "completed": InvalidSessionTransition(
            SessionState.COMPLETED, SessionEvent.AUTOSAVE
        ),
        "out-of-range": CurrentQuestionOutOfRange(5, 3),
        "missing-answers": MissingRequiredAnswers(["q2", "q3"]),
        "too-slow": TimeLimitExceeded(700, 600),
        "other-lifecycle": SessionLifecycleError("something odd"),
    }

    @app.get("/raise/{kind}")
    async def raise_error(kind: str):
        raise errors[kind]

    @app.get("/http")
    async def raise_http():
        raise HTTPException(status_code=403, detail="Forbidden here")

    @app.get("/http-dict")
    async def raise_http_dict():
        raise HTTPException(
            status_code=429,
            detail={"error": "Rate limit exceeded", "retryAfter": 12},
            headers={"Retry-After": "12"},
        )

    @app.post("/validate")
    async def validate(payload: _Payload):
        return payload

    @app.get("/crash")
    async def crash():
        raise RuntimeError("database password is hunter2")

    return TestClient(app, raise_server_exceptions=False)


class TestHandlerRegistration:
    """The singleton app has every handler installed."""

    def test_handlers_registered(self):
        from app.main import app

        for exc_type in (
            StarletteHTTPException,
            RequestValidationError,
            SessionLifecycleError,
            Exception,
        ):
            assert exc_type in app.exception_handlers


class TestLifecycleErrorMapping:
    """Tests for session lifecycle error responses."""

    @pytest.mark.parametrize(
        "kind,status_code,message",
        [
            ("test-missing", 404, "Test not found or inactive"),
            ("session-missing", 404, "Session not found or expired"),
            ("completed", 409, "Session has already been completed"),
            ("out-of-range", 400, "currentQuestion must be between 0 and 2"),
            ("too-slow", 400, "Time limit exceeded"),
        ],
    )
    def test_status_and_message(self, error_client, kind, status_code, message):
        response = error_client.get(f"/raise/{kind}")
        assert response.status_code == status_code
        assert response.json() == {"success": False, "error": message}

    def test_missing_answers_lists_questions(self, error_client):
        response = error_client.get("/raise/missing-answers")
        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Missing required answers",
            "missingQuestions": ["q2", "q3"],
        }

    def test_unmapped_lifecycle_error_is_bad_request(self, error_client):
        response = error_client.get("/raise/other-lifecycle")
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "something odd"}

    def test_lifecycle_error_is_tracked(self, error_client):
        with patch("app.main.AnalyticsTracker.track_api_error") as mock_track:
            error_client.get("/raise/session-missing")
        assert mock_track.call_args.kwargs["error_type"] == "SessionNotFoundError"


class TestHTTPExceptionHandler:
    """Tests for HTTPException rendering."""

    def test_string_detail(self, error_client):
        response = error_client.get("/http")
        assert response.status_code == 403
        assert response.json() == {"success": False, "error": "Forbidden here"}

    def test_dict_detail_and_headers(self, error_client):
        response = error_client.get("/http-dict")
        assert response.status_code == 429
        assert response.headers["Retry-After"] == "12"
        assert response.json() == {
            "success": False,
            "error": "Rate limit exceeded",
            "retryAfter": 12,
        }

    def test_unknown_route_uses_envelope(self, error_client):
        response = error_client.get("/api/does-not-exist")
        assert response.status_code == 404
        assert response.json()["success"] is False


class TestValidationHandler:
    """Tests for request validation errors."""

    def test_validation_error_is_400_with_details(self, error_client):
        response = error_client.post("/validate", json={"count": "many"})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Validation failed"
        assert body["details"][0]["loc"] == ["body", "count"]


class TestGenericHandler:
    """Tests for unexpected exceptions."""

    def test_internal_error_hides_details(self, error_client):
        response = error_client.get("/crash")

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Internal server error"
        assert body["errorId"]
        assert "hunter2" not in response.text

    def test_internal_error_reported(self, error_client):
        with patch("app.main.observability.capture_error") as mock_capture:
            response = error_client.get("/crash")

        mock_capture.assert_called_once()
        context = mock_capture.call_args.kwargs["context"]
        assert context["error_id"] == response.json()["errorId"]
        assert context["path"] == "/crash"

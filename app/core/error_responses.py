"""
Standardized error response messages and builders.

This module provides consistent error messages and HTTPException builders
for the entire API. Every error leaves the service as the envelope
``{"success": false, "error": <message>, ...extra}``; the exception
handlers in ``app.main`` do the rendering.

Extra fields (for example ``missingQuestions`` on a submission that skips
required answers) travel in the HTTPException detail as a dict:

    raise_bad_request(
        ErrorMessages.MISSING_REQUIRED_ANSWERS,
        missingQuestions=["q1", "q3"],
    )

Error Message Format Guidelines:
- Use sentence case (capitalize first letter only)
- Keep messages short; the client maps them to localized text
- Never include stack traces or driver messages
"""

from typing import Any, NoReturn, Optional, Union

from fastapi import HTTPException, status


class ErrorMessages:
    """Centralized error message constants and templates.

    Naming Convention:
    - Constants: SCREAMING_SNAKE_CASE for static messages
    - Methods: snake_case for templates that accept parameters
    """

    # ==========================================================================
    # Authentication Errors (401)
    # ==========================================================================
    AUTHENTICATION_REQUIRED = "Authentication required"
    INVALID_CREDENTIALS = "Invalid email or password"
    INVALID_TOKEN = "Invalid authentication token"
    INVALID_REFRESH_TOKEN = "Invalid refresh token"
    INVALID_TOKEN_TYPE = "Invalid token type"
    INVALID_TOKEN_PAYLOAD = "Invalid token payload"
    USER_NOT_FOUND_AUTH = "User not found"

    # ==========================================================================
    # Not Found Errors (404)
    # ==========================================================================
    TEST_NOT_FOUND = "Test not found or inactive"
    SESSION_NOT_FOUND = "Session not found or expired"
    RESULT_NOT_FOUND = "Result not found"

    # ==========================================================================
    # Conflict Errors (409)
    # ==========================================================================
    EMAIL_ALREADY_REGISTERED = "User with this email already exists"
    EMAIL_IN_USE = "Email is already in use by another account"
    SESSION_ALREADY_COMPLETED = "Session has already been completed"

    # ==========================================================================
    # Bad Request Errors (400)
    # ==========================================================================
    VALIDATION_FAILED = "Validation failed"
    SESSION_ID_REQUIRED = "Session ID is required"
    MISSING_REQUIRED_ANSWERS = "Missing required answers"
    TIME_LIMIT_EXCEEDED = "Time limit exceeded"
    PASSWORDS_DO_NOT_MATCH = "Passwords don't match"
    INCORRECT_CURRENT_PASSWORD = "Current password is incorrect"
    PASSWORD_UNCHANGED = "New password must be different from the current password"
    BATCH_TOO_LARGE = "Batch size too large"

    # ==========================================================================
    # Rate Limiting (429)
    # ==========================================================================
    RATE_LIMIT_EXCEEDED = "Rate limit exceeded"

    # ==========================================================================
    # Server Errors (500/503)
    # ==========================================================================
    INTERNAL_SERVER_ERROR = "Internal server error"
    SERVICE_UNHEALTHY = "Service unhealthy"
    REQUEST_TIMEOUT = "Request timed out. Please try again."

    # ==========================================================================
    # Template Methods for Dynamic Messages
    # ==========================================================================
    @staticmethod
    def current_question_out_of_range(question_count: int) -> str:
        """Message when an autosave moves the cursor outside the test."""
        return f"currentQuestion must be between 0 and {question_count - 1}"

    @staticmethod
    def database_operation_failed(operation: str) -> str:
        """Generic message for database operation failures."""
        return f"Failed to {operation}. Please try again later."


# ==============================================================================
# HTTPException Builder Functions
# ==============================================================================


def _detail(message: str, extra: dict[str, Any]) -> Union[str, dict[str, Any]]:
    """Pack extra envelope fields alongside the message when present."""
    if not extra:
        return message
    return {"error": message, **extra}


def raise_bad_request(detail: str, **extra: Any) -> NoReturn:
    """Raise a 400 Bad Request exception.

    Use for malformed input and business-rule violations (missing required
    answers, time limit exceeded).

    Args:
        detail: User-facing error message
        **extra: Additional fields merged into the error envelope

    Raises:
        HTTPException: 400 Bad Request
    """
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=_detail(detail, extra),
    )


def raise_unauthorized(
    detail: str,
    include_www_authenticate: bool = True,
) -> NoReturn:
    """Raise a 401 Unauthorized exception.

    Args:
        detail: User-facing error message
        include_www_authenticate: Whether to include WWW-Authenticate header

    Raises:
        HTTPException: 401 Unauthorized
    """
    headers = {"WWW-Authenticate": "Bearer"} if include_www_authenticate else None
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers=headers,
    )


def raise_not_found(detail: str) -> NoReturn:
    """Raise a 404 Not Found exception.

    Also used when a resource exists but belongs to another user, so that
    ownership is never disclosed.

    Raises:
        HTTPException: 404 Not Found
    """
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=detail,
    )


def raise_conflict(detail: str) -> NoReturn:
    """Raise a 409 Conflict exception.

    Raises:
        HTTPException: 409 Conflict
    """
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=detail,
    )


def raise_too_many_requests(detail: str, retry_after: int = 0) -> NoReturn:
    """Raise a 429 Too Many Requests exception.

    Args:
        detail: User-facing error message
        retry_after: Seconds until the client may retry (0 = unknown)

    Raises:
        HTTPException: 429 Too Many Requests
    """
    headers = {"Retry-After": str(retry_after)} if retry_after > 0 else None
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail=_detail(detail, {"retryAfter": retry_after}),
        headers=headers,
    )


def raise_server_error(
    detail: str,
    error_id: Optional[str] = None,
) -> NoReturn:
    """Raise a 500 Internal Server Error exception.

    Always use user-friendly messages; log technical details separately.

    Args:
        detail: User-facing error message (should be generic and friendly)
        error_id: Optional error tracking ID to include in response

    Raises:
        HTTPException: 500 Internal Server Error
    """
    extra = {"errorId": error_id} if error_id else {}
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=_detail(detail, extra),
    )


def raise_service_unavailable(detail: str, **extra: Any) -> NoReturn:
    """Raise a 503 Service Unavailable exception.

    Raises:
        HTTPException: 503 Service Unavailable
    """
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=_detail(detail, extra),
    )

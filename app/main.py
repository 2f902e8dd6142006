"""
Main FastAPI application.
"""
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Callable, Optional
from urllib.parse import urlparse

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.endpoints.api import api_router
from app.core.analytics import AnalyticsTracker
from app.core.config import settings
from app.core.error_responses import ErrorMessages
from app.core.logging_config import setup_logging
from app.core.session_state import (
    CurrentQuestionOutOfRange,
    InvalidSessionTransition,
    SessionLifecycleError,
    SessionNotFoundError,
    TestNotFoundError,
)
from app.core.submission import MissingRequiredAnswers, TimeLimitExceeded
from app.middleware import (
    PerformanceMonitoringMiddleware,
    RequestLoggingMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)
from app.ratelimit import InMemoryStorage, RateLimiter, RateLimiterStorage
from libs.observability import observability

# Initialize logging configuration at startup
setup_logging()

logger = logging.getLogger(__name__)


def _sanitize_redis_url(url: str) -> str:
    """Remove the password from a Redis URL for safe logging."""
    parsed = urlparse(url)
    if parsed.password:
        netloc = parsed.hostname or "localhost"
        if parsed.port:
            netloc = f"{netloc}:{parsed.port}"
        return f"{parsed.scheme}://{netloc}{parsed.path}"
    return url


def _create_rate_limit_storage() -> RateLimiterStorage:
    """
    Create the rate limit storage backend configured in settings.

    If Redis is configured but unreachable, falls back to in-memory storage
    (limits are then per worker).
    """
    if settings.RATE_LIMIT_STORAGE == "redis":
        redis_url = _sanitize_redis_url(settings.RATE_LIMIT_REDIS_URL)
        try:
            from app.ratelimit.storage import RedisStorage

            storage = RedisStorage(redis_url=settings.RATE_LIMIT_REDIS_URL)
        except Exception as e:
            logger.warning(
                f"Failed to initialize Redis storage at {redis_url}: {e}. "
                "Falling back to in-memory storage."
            )
            return InMemoryStorage()

        if storage.is_connected():
            logger.info(f"Rate limiting using Redis storage at {redis_url}")
            return storage

        logger.warning(
            "Redis not available for rate limiting, falling back to in-memory storage. "
            "Rate limits will NOT be shared across workers."
        )
        storage.close()
        return InMemoryStorage()

    logger.info("Rate limiting using in-memory storage")
    return InMemoryStorage()


def _create_rate_limiter() -> Optional[RateLimiter]:
    if not settings.RATE_LIMIT_ENABLED:
        logger.info("Rate limiting disabled")
        return None
    return RateLimiter.from_name(
        settings.RATE_LIMIT_STRATEGY,
        _create_rate_limit_storage(),
        default_limit=settings.MONITORING_RATE_LIMIT,
        default_window=settings.MONITORING_RATE_WINDOW,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan event handler.

    - On startup: initializes error tracking
    - On shutdown: releases the rate limiter and flushes error tracking
    """
    observability.init(
        service_name="aptitude-backend",
        environment=settings.ENV,
        service_version=settings.APP_VERSION,
        sentry_dsn=settings.SENTRY_DSN,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
    )

    yield

    limiter: Optional[RateLimiter] = getattr(app.state, "rate_limiter", None)
    if limiter is not None:
        limiter.close()
        logger.info("Closed rate limiter storage")

    observability.shutdown()


# OpenAPI tags metadata
tags_metadata = [
    {"name": "health", "description": "Liveness checks"},
    {"name": "auth", "description": "Signup, login, token refresh and current user"},
    {"name": "profile", "description": "Profile, preferences and password changes"},
    {"name": "tests", "description": "Test catalogue with per-user progress"},
    {"name": "sessions", "description": "Start, autosave, resume and abandon test sessions"},
    {"name": "submit", "description": "Score and store a completed test"},
    {"name": "results", "description": "Result history and statistics"},
    {"name": "dashboard", "description": "Personal dashboard summary"},
    {"name": "monitoring", "description": "Client error, performance and analytics ingestion"},
]


def _error_body(message: str, **extra: Any) -> dict[str, Any]:
    return {"success": False, "error": message, **extra}


# Domain error type -> (status code, body builder)
_LIFECYCLE_ERRORS: dict[type, tuple[int, Callable[[Any], dict[str, Any]]]] = {
    TestNotFoundError: (
        status.HTTP_404_NOT_FOUND,
        lambda exc: _error_body(ErrorMessages.TEST_NOT_FOUND),
    ),
    SessionNotFoundError: (
        status.HTTP_404_NOT_FOUND,
        lambda exc: _error_body(ErrorMessages.SESSION_NOT_FOUND),
    ),
    InvalidSessionTransition: (
        status.HTTP_409_CONFLICT,
        lambda exc: _error_body(ErrorMessages.SESSION_ALREADY_COMPLETED),
    ),
    CurrentQuestionOutOfRange: (
        status.HTTP_400_BAD_REQUEST,
        lambda exc: _error_body(
            ErrorMessages.current_question_out_of_range(exc.question_count)
        ),
    ),
    MissingRequiredAnswers: (
        status.HTTP_400_BAD_REQUEST,
        lambda exc: _error_body(
            ErrorMessages.MISSING_REQUIRED_ANSWERS,
            missingQuestions=exc.missing_questions,
        ),
    ),
    TimeLimitExceeded: (
        status.HTTP_400_BAD_REQUEST,
        lambda exc: _error_body(ErrorMessages.TIME_LIMIT_EXCEEDED),
    ),
}


def _track_error(
    request: Request, exc: Exception, error_type: str, message: str, **context: Any
) -> None:
    AnalyticsTracker.track_api_error(
        method=request.method,
        path=str(request.url.path),
        error_type=error_type,
        error_message=message,
        user_id=getattr(request.state, "user_id", None),
    )
    observability.capture_error(
        exc,
        context={"path": str(request.url.path), "method": request.method, **context},
        tags={"error_type": error_type},
    )


def create_application() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        lifespan=lifespan,
        description=(
            "Backend for a mobile-first aptitude test app.\n\n"
            "* Authentication with Bearer tokens or httpOnly cookies\n"
            "* Test catalogue, session autosave and resume\n"
            "* Scoring, percentiles and category analysis\n"
            "* Result history and a personal dashboard\n"
            "* Client monitoring ingestion"
        ),
        docs_url=f"{settings.API_PREFIX}/docs",
        redoc_url=f"{settings.API_PREFIX}/redoc",
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        openapi_tags=tags_metadata,
    )

    app.state.rate_limiter = _create_rate_limiter()

    # Configure CORS
    # Credentials are allowed so browsers send the auth cookies
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )

    # Middleware added last runs first: size limit, then timing, then logging
    app.add_middleware(
        SecurityHeadersMiddleware,
        hsts_enabled=settings.ENV == "production",
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        PerformanceMonitoringMiddleware,
        slow_request_threshold=1.0,  # Log requests taking > 1 second
    )
    app.add_middleware(RequestSizeLimitMiddleware, max_body_size=1024 * 1024)

    # Include API router
    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """
        Render HTTP exceptions as the error envelope and track them.

        A dict detail (``{"error": ..., **extra}``) contributes its extra
        fields to the envelope.
        """
        if isinstance(exc.detail, dict):
            content = {"success": False, **exc.detail}
        else:
            content = _error_body(str(exc.detail))

        if exc.status_code >= 400:
            _track_error(
                request,
                exc,
                "HTTPException",
                str(content.get("error")),
                status_code=exc.status_code,
            )

        return JSONResponse(
            status_code=exc.status_code,
            content=content,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        """
        Render request validation errors as a 400 with field-level details.
        """
        details = [
            {
                "loc": list(error.get("loc", [])),
                "msg": str(error.get("msg", "")),
                "type": str(error.get("type", "")),
            }
            for error in exc.errors()
        ]

        _track_error(
            request,
            exc,
            "ValidationError",
            str(details),
            validation_errors=details,
        )

        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_body(ErrorMessages.VALIDATION_FAILED, details=details),
        )

    @app.exception_handler(SessionLifecycleError)
    async def session_lifecycle_exception_handler(
        request: Request, exc: SessionLifecycleError
    ):
        """
        Map session manager and submission errors to 4xx responses.
        """
        status_code, build_body = _LIFECYCLE_ERRORS.get(
            type(exc),
            (status.HTTP_400_BAD_REQUEST, lambda e: _error_body(str(e))),
        )
        content = build_body(exc)

        logger.info(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc}")
        AnalyticsTracker.track_api_error(
            method=request.method,
            path=str(request.url.path),
            error_type=type(exc).__name__,
            error_message=content["error"],
            user_id=getattr(request.state, "user_id", None),
        )

        return JSONResponse(status_code=status_code, content=content)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """
        Handle unexpected exceptions and track them.

        Generates a unique error_id (UUID) for each exception to enable
        support teams to trace specific errors in logs. The error_id is
        included in the response body and logged with the full exception.
        """
        error_id = str(uuid.uuid4())

        logger.exception(
            f"Unhandled exception [error_id={error_id}]: {exc}",
            extra={"error_id": error_id},
        )

        _track_error(
            request,
            exc,
            exc.__class__.__name__,
            str(exc),
            error_id=error_id,
        )

        # Don't leak internal details
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(ErrorMessages.INTERNAL_SERVER_ERROR, errorId=error_id),
        )

    return app


app = create_application()


@app.get("/")
async def root():
    """
    Root endpoint.
    """
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": f"{settings.API_PREFIX}/docs",
    }

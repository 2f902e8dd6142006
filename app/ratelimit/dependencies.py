"""
FastAPI dependencies that apply the application's rate limiter.

The limiter lives on ``app.state.rate_limiter`` (set in ``create_application``)
so each application instance, including each test app, has its own state.
"""
import logging
from typing import Optional

from fastapi import Request, Response

from app.core.analytics import AnalyticsTracker
from app.core.auth.ip_extraction import get_secure_client_ip
from app.core.config import settings
from app.core.error_responses import ErrorMessages, raise_too_many_requests

from .limiter import RateLimiter

logger = logging.getLogger(__name__)


def get_rate_limiter(request: Request) -> Optional[RateLimiter]:
    """Return the application's limiter, or None when rate limiting is disabled."""
    return getattr(request.app.state, "rate_limiter", None)


def _add_rate_limit_headers(response: Response, metadata: dict) -> None:
    response.headers["X-RateLimit-Limit"] = str(metadata.get("limit", 0))
    response.headers["X-RateLimit-Remaining"] = str(metadata.get("remaining", 0))
    response.headers["X-RateLimit-Reset"] = str(metadata.get("reset_at", 0))


async def monitoring_rate_limit(request: Request, response: Response) -> None:
    """
    Throttle client monitoring ingestion per client IP.

    Fails open: if the limiter itself errors (e.g. Redis is down) the request
    proceeds.

    Raises:
        HTTPException: 429 with Retry-After when the quota is exhausted
    """
    limiter = get_rate_limiter(request)
    if limiter is None:
        return

    client_ip = get_secure_client_ip(request)
    identifier = f"ip:{client_ip}::endpoint::monitoring"

    try:
        allowed, metadata = limiter.check(
            identifier,
            limit=settings.MONITORING_RATE_LIMIT,
            window=settings.MONITORING_RATE_WINDOW,
        )
    except Exception as e:
        logger.warning(
            f"Rate limiter error on monitoring ingestion: client_ip={client_ip}, "
            f"error={type(e).__name__}: {e}. Allowing request (fail-open)."
        )
        return

    if not allowed:
        AnalyticsTracker.track_rate_limit_exceeded(
            user_identifier=client_ip,
            endpoint=request.url.path,
            limit=metadata.get("limit", 0),
        )
        raise_too_many_requests(
            ErrorMessages.RATE_LIMIT_EXCEEDED,
            retry_after=metadata.get("retry_after", 0),
        )

    _add_rate_limit_headers(response, metadata)

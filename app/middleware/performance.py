"""
Performance monitoring middleware for tracking API response times.
"""
import logging
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.core.analytics import AnalyticsTracker
from app.core.graceful_failure import graceful_failure

logger = logging.getLogger(__name__)


class PerformanceMonitoringMiddleware(BaseHTTPMiddleware):
    """
    Middleware to time every request.

    Adds ``X-Process-Time`` (seconds) to each response and reports requests
    slower than the threshold as ``performance.slow_request`` events.
    """

    def __init__(self, app, slow_request_threshold: float = 1.0):
        """
        Args:
            app: FastAPI application
            slow_request_threshold: Time in seconds to consider a request slow (default: 1.0s)
        """
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = time.perf_counter() - start_time

        response.headers["X-Process-Time"] = str(round(process_time, 4))

        # Route template (e.g. "/api/tests/{test_id}/session") once routing ran
        route = request.scope.get("route")
        route_path = getattr(route, "path", None) or request.url.path

        if process_time > self.slow_request_threshold:
            logger.warning(
                f"Slow request: {request.method} {route_path} "
                f"took {process_time:.4f}s (threshold: {self.slow_request_threshold}s)"
            )
            with graceful_failure("track slow request", logger):
                AnalyticsTracker.track_slow_request(
                    method=request.method,
                    path=route_path,
                    duration_seconds=process_time,
                    status_code=response.status_code,
                )

        logger.debug(
            f"{request.method} {route_path} "
            f"- Status: {response.status_code} "
            f"- Time: {process_time:.4f}s"
        )
        return response

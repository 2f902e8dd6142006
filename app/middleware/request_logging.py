"""
Request/response logging middleware for tracking API interactions.
"""
import logging
import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.core.auth.cookies import ACCESS_TOKEN_COOKIE
from app.core.logging_config import request_id_context

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _user_identifier(request: Request) -> str:
    """Short, non-secret hint of who is calling."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return f"token:{auth_header[7:17]}..."
    if request.cookies.get(ACCESS_TOKEN_COOKIE):
        return "cookie"
    return "anonymous"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log incoming requests and outgoing responses.

    Every request gets a correlation id: the client's ``X-Request-ID`` if it
    sent one, otherwise a fresh UUID. The id is stored in
    ``request_id_context`` for the JSON log formatter and echoed back on the
    response. Bodies are never logged; they carry answers and passwords.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        token = request_id_context.set(request_id)

        start_time = time.time()
        extra_fields = {
            "method": request.method,
            "path": request.url.path,
            "client_host": request.client.host if request.client else "unknown",
            "user_identifier": _user_identifier(request),
        }
        logger.info("Incoming request", extra=extra_fields)

        try:
            response = await call_next(request)

            extra_fields["status_code"] = response.status_code
            extra_fields["duration_ms"] = round((time.time() - start_time) * 1000, 2)
            response.headers[REQUEST_ID_HEADER] = request_id

            if response.status_code >= 500:
                logger.error("Server error response", extra=extra_fields)
            elif response.status_code >= 400:
                logger.warning("Client error response", extra=extra_fields)
            else:
                logger.info("Request completed", extra=extra_fields)

            return response
        finally:
            request_id_context.reset(token)

"""
Security middleware: response hardening headers and request body size cap.
"""
from typing import Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

# Restrictive CSP: the API serves JSON only
_CSP_DIRECTIVES = (
    "default-src 'none'",
    "frame-ancestors 'none'",
    "base-uri 'none'",
    "form-action 'none'",
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers to all responses.

    HSTS is opt-in so local HTTP development keeps working.
    """

    def __init__(
        self,
        app: ASGIApp,
        hsts_enabled: bool = False,
        hsts_max_age: int = 31536000,  # 1 year
        csp_enabled: bool = True,
    ):
        super().__init__(app)
        headers = {
            "X-Frame-Options": "DENY",
            "X-Content-Type-Options": "nosniff",
            "Referrer-Policy": "strict-origin-when-cross-origin",
            "Permissions-Policy": "geolocation=(), microphone=(), camera=(), payment=()",
            "X-Permitted-Cross-Domain-Policies": "none",
        }
        if csp_enabled:
            headers["Content-Security-Policy"] = "; ".join(_CSP_DIRECTIVES)
        if hsts_enabled:
            headers["Strict-Transport-Security"] = (
                f"max-age={hsts_max_age}; includeSubDomains"
            )
        self.headers = headers

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers.setdefault(name, value)
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Reject requests whose declared body size exceeds ``max_body_size``.

    Monitoring batches are the largest legitimate payloads (50 error reports
    with stacks of up to 5000 characters each).
    """

    def __init__(self, app: ASGIApp, max_body_size: int = 1024 * 1024):
        """
        Args:
            app: ASGI application
            max_body_size: Maximum request body size in bytes (default: 1MB)
        """
        super().__init__(app)
        self.max_body_size = max_body_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit():
            if int(content_length) > self.max_body_size:
                return JSONResponse(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    content={"success": False, "error": "Request body too large"},
                )
        return await call_next(request)

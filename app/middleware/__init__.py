"""
Middleware package for request/response processing.
"""
from .performance import PerformanceMonitoringMiddleware
from .request_logging import RequestLoggingMiddleware
from .security import RequestSizeLimitMiddleware, SecurityHeadersMiddleware

__all__ = [
    "PerformanceMonitoringMiddleware",
    "RequestLoggingMiddleware",
    "RequestSizeLimitMiddleware",
    "SecurityHeadersMiddleware",
]

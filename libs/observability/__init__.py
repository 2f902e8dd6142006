"""Observability abstraction for the aptitude test services.

Errors and notable messages are routed to Sentry. Structured logs and
analytics events stay in the standard logging pipeline.

Usage:
    from libs.observability import observability

    # Initialize at application startup
    observability.init(service_name="my-service", environment="production")

    # Capture errors (routed to Sentry)
    try:
        risky_operation()
    except Exception as e:
        observability.capture_error(e, context={"operation": "risky"})
        raise

    # Set user context for error tracking
    observability.set_user("user-123")

Security:
    Sanitize PII before passing it to observability methods, and prefer
    opaque identifiers (user_id) over emails or names.
"""

from libs.observability.facade import ObservabilityFacade

# Singleton instance for application use
observability = ObservabilityFacade()

__all__ = ["observability", "ObservabilityFacade"]

"""Public API facade for observability.

This module provides the interface that application code uses. Errors and
messages are routed to Sentry when a DSN is configured; without one every
call is a cheap no-op, which is what development and tests get.

Example:
    from libs.observability import observability

    observability.init(service_name="aptitude-backend", environment="production")

    try:
        risky_operation()
    except Exception as e:
        observability.capture_error(e, context={"operation": "risky"})
        raise
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from libs.observability.config import ObservabilityConfig
    from libs.observability.sentry_backend import SentryBackend

logger = logging.getLogger(__name__)

ErrorLevel = Literal["debug", "info", "warning", "error", "fatal"]


class ObservabilityFacade:
    """Unified facade for observability operations."""

    def __init__(self) -> None:
        self._initialized = False
        self._config: ObservabilityConfig | None = None
        self._sentry_backend: SentryBackend | None = None

    @property
    def is_initialized(self) -> bool:
        """Check if observability has been initialized."""
        return self._initialized

    def init(
        self,
        service_name: str | None = None,
        environment: str | None = None,
        **overrides: Any,
    ) -> bool:
        """Initialize observability backends.

        This method is idempotent - calling it multiple times is safe.

        Args:
            service_name: Identifies this service in Sentry events.
            environment: Deployment environment (e.g., "production").
            **overrides: Passed to ``load_config`` (``service_version``,
                ``sentry_dsn``, ``traces_sample_rate``).

        Returns:
            True if initialization succeeded or was already initialized.
            False if initialization failed due to configuration errors.
        """
        if self._initialized:
            logger.warning(
                "Observability already initialized. Skipping reinitialization. "
                "Call shutdown() first if you need to reconfigure."
            )
            return True

        try:
            from libs.observability.config import ConfigurationError, load_config

            self._config = load_config(
                service_name=service_name,
                environment=environment,
                **overrides,
            )
        except ConfigurationError as e:
            logger.error("Failed to load observability configuration: %s", e)
            return False

        sentry_initialized = False
        if self._config.sentry is not None and self._config.sentry.enabled:
            from libs.observability.sentry_backend import SentryBackend

            self._sentry_backend = SentryBackend(self._config.sentry)
            sentry_initialized = self._sentry_backend.init()

        self._initialized = True

        if sentry_initialized:
            logger.info(
                "Observability initialized: Sentry (service=%s, environment=%s)",
                self._config.service_name,
                self._config.sentry.environment if self._config.sentry else None,
            )
        else:
            logger.info("Observability initialized without an error tracking backend")

        return True

    def capture_error(
        self,
        exception: BaseException,
        *,
        context: dict[str, Any] | None = None,
        level: ErrorLevel = "error",
        user: dict[str, Any] | None = None,
        tags: dict[str, str] | None = None,
    ) -> str | None:
        """Capture an error and send to error tracking backend (Sentry).

        Automatically enriches errors with service metadata from configuration.

        Returns:
            Event ID if captured, None if skipped (not initialized, backend
            disabled, or capture failed).
        """
        if not self._initialized or self._sentry_backend is None:
            logger.debug(
                "capture_error skipped (no backend): %s", type(exception).__name__
            )
            return None

        enriched_context = dict(context) if context else {}
        if self._config is not None:
            enriched_context["service"] = {
                "name": self._config.service_name,
                "version": self._config.service_version,
            }

        try:
            return self._sentry_backend.capture_error(
                exception,
                context=enriched_context,
                level=level,
                user=user,
                tags=tags,
            )
        except Exception as e:
            logger.error(
                "Failed to capture error to Sentry: %s. Original error: %s: %s",
                e,
                type(exception).__name__,
                str(exception),
            )
            return None

    def capture_message(
        self,
        message: str,
        *,
        level: ErrorLevel = "info",
        context: dict[str, Any] | None = None,
        tags: dict[str, str] | None = None,
    ) -> str | None:
        """Capture a notable non-exception event."""
        if not self._initialized or self._sentry_backend is None:
            return None

        try:
            return self._sentry_backend.capture_message(
                message, level=level, context=context, tags=tags
            )
        except Exception as e:
            logger.error("Failed to capture message to Sentry: %s", e)
            return None

    def set_user(self, user_id: str | None, **extra: Any) -> None:
        """Set user context for subsequent error captures.

        Pass None to clear the user context.
        """
        if self._sentry_backend is not None:
            self._sentry_backend.set_user(user_id, **extra)

    def set_context(self, name: str, context: dict[str, Any]) -> None:
        """Attach a named context block to subsequent error captures."""
        if self._sentry_backend is not None:
            self._sentry_backend.set_context(name, context)

    def flush(self, timeout: float = 2.0) -> None:
        """Flush pending events to the backend."""
        if not self._initialized or self._sentry_backend is None:
            return

        try:
            self._sentry_backend.flush(timeout)
        except Exception as e:
            logger.warning("Sentry backend flush failed: %s", e)

    def shutdown(self) -> None:
        """Shutdown observability backends gracefully.

        This method is idempotent - calling it multiple times is safe.
        """
        if not self._initialized:
            return

        logger.info("Shutting down observability backends")

        if self._sentry_backend is not None:
            try:
                self._sentry_backend.shutdown()
            except Exception as e:
                logger.warning("Sentry backend shutdown failed: %s", e)
            finally:
                self._sentry_backend = None

        self._initialized = False
        self._config = None

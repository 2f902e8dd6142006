"""Sentry backend for error tracking.

This module handles all Sentry SDK interactions including initialization,
error capture, and context management.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from libs.observability.config import SentryConfig

logger = logging.getLogger(__name__)


def _serialize_value(value: Any, _seen: set[int] | None = None) -> Any:
    """Serialize a value to a JSON-compatible type.

    Handles datetime, UUID, bytes and containers. Circular references are
    replaced with a placeholder string. Falls back to str() for unknown types.
    """
    if _seen is None:
        _seen = set()

    if value is None or isinstance(value, (bool, int, float, str)):
        return value

    if isinstance(value, (datetime, date)):
        return value.isoformat()

    if isinstance(value, UUID):
        return str(value)

    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            return f"<bytes: {len(value)} bytes>"

    value_id = id(value)
    if value_id in _seen:
        return f"<circular reference: {type(value).__name__}>"
    _seen.add(value_id)

    if isinstance(value, dict):
        return {k: _serialize_value(v, _seen) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return [_serialize_value(item, _seen) for item in value]

    if isinstance(value, set):
        return [_serialize_value(item, _seen) for item in sorted(value, key=str)]

    return str(value)


def _serialize_context(context: dict[str, Any]) -> dict[str, Any]:
    """Serialize context dict to ensure all values are JSON-compatible."""
    seen: set[int] = set()
    return {key: _serialize_value(value, seen) for key, value in context.items()}


class SentryBackend:
    """Backend for Sentry error tracking."""

    def __init__(self, config: SentryConfig) -> None:
        self._config = config
        self._initialized = False

    def init(self) -> bool:
        """Initialize the Sentry SDK with FastAPI/Starlette integrations.

        Returns:
            True if Sentry was initialized successfully.
            False if initialization was skipped (disabled/no DSN) or failed.

        Note:
            Does not raise exceptions - failures are logged and return False.
        """
        if not self._config.enabled or not self._config.dsn:
            logger.debug("Sentry initialization skipped (disabled or DSN not configured)")
            return False

        try:
            import sentry_sdk
            from sentry_sdk.integrations.fastapi import FastApiIntegration
            from sentry_sdk.integrations.logging import LoggingIntegration
            from sentry_sdk.integrations.starlette import StarletteIntegration

            sentry_sdk.init(
                dsn=self._config.dsn,
                environment=self._config.environment,
                release=self._config.release,
                traces_sample_rate=self._config.traces_sample_rate,
                integrations=[
                    LoggingIntegration(
                        level=None,  # Don't capture breadcrumbs from logs
                        event_level=None,  # Don't send log events
                    ),
                    FastApiIntegration(transaction_style="endpoint"),
                    StarletteIntegration(transaction_style="endpoint"),
                ],
                send_default_pii=self._config.send_default_pii,
            )

            self._initialized = True

            logger.info(
                f"Sentry initialized for environment '{self._config.environment}' "
                f"with {self._config.traces_sample_rate * 100:.0f}% trace sampling"
            )
            return True

        except Exception as e:
            logger.error(f"Failed to initialize Sentry: {e}", exc_info=True)
            return False

    def capture_error(
        self,
        exception: BaseException,
        *,
        context: dict[str, Any] | None = None,
        level: str = "error",
        user: dict[str, Any] | None = None,
        tags: dict[str, str] | None = None,
    ) -> str | None:
        """Capture an exception and send to Sentry.

        Args:
            exception: The exception to capture.
            context: Additional context data to attach. Values are automatically
                serialized (datetime -> ISO string, UUID -> string, etc.).
            level: Error severity level.
            user: User information dict with keys like "id", "email".
            tags: Tags for categorization and filtering in Sentry.

        Returns:
            Event ID if captured, None if not initialized.
        """
        if not self._initialized:
            return None

        import sentry_sdk

        with sentry_sdk.new_scope() as scope:
            if context:
                scope.set_context("additional", _serialize_context(context))
            if user:
                scope.set_user(user)
            if tags:
                for key, value in tags.items():
                    scope.set_tag(key, value)
            scope.set_level(level)

            return sentry_sdk.capture_exception(exception)

    def capture_message(
        self,
        message: str,
        *,
        level: str = "info",
        context: dict[str, Any] | None = None,
        tags: dict[str, str] | None = None,
    ) -> str | None:
        """Capture a message and send to Sentry.

        Returns:
            Event ID if captured, None if not initialized.
        """
        if not self._initialized:
            return None

        import sentry_sdk

        with sentry_sdk.new_scope() as scope:
            if context:
                scope.set_context("additional", _serialize_context(context))
            if tags:
                for key, value in tags.items():
                    scope.set_tag(key, value)

            return sentry_sdk.capture_message(message, level=level)

    def set_user(self, user_id: str | None, **extra: Any) -> None:
        """Set the current user context."""
        if not self._initialized:
            return

        import sentry_sdk

        if user_id is None:
            sentry_sdk.set_user(None)
        else:
            sentry_sdk.set_user({"id": user_id, **extra})

    def set_context(self, name: str, context: dict[str, Any]) -> None:
        """Set a context block on the current scope."""
        if not self._initialized:
            return

        import sentry_sdk

        sentry_sdk.set_context(name, _serialize_context(context))

    def flush(self, timeout: float = 2.0) -> None:
        """Flush pending events."""
        if not self._initialized:
            return

        import sentry_sdk

        sentry_sdk.flush(timeout=timeout)

    def shutdown(self) -> None:
        """Shutdown the Sentry SDK."""
        if not self._initialized:
            return

        import sentry_sdk

        client = sentry_sdk.get_client()
        if client is not None:
            client.close(timeout=2.0)

        self._initialized = False

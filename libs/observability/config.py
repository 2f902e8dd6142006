"""Configuration for observability.

Configuration comes from keyword arguments with environment-variable
fallbacks, so services can pass their pydantic settings straight through.
"""

from __future__ import annotations

import os
from dataclasses import dataclass


class ConfigurationError(Exception):
    """Raised when observability configuration is invalid."""

    pass


@dataclass
class SentryConfig:
    """Configuration for Sentry backend."""

    enabled: bool = True
    dsn: str | None = None
    environment: str = "development"
    release: str | None = None
    traces_sample_rate: float = 0.1
    send_default_pii: bool = False

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigurationError: If any value is out of range.
        """
        if not 0.0 <= self.traces_sample_rate <= 1.0:
            raise ConfigurationError(
                f"traces_sample_rate must be between 0.0 and 1.0, "
                f"got {self.traces_sample_rate}"
            )


@dataclass
class ObservabilityConfig:
    """Top-level observability configuration."""

    service_name: str = "unknown-service"
    service_version: str | None = None
    sentry: SentryConfig | None = None


def load_config(
    service_name: str | None = None,
    service_version: str | None = None,
    environment: str | None = None,
    sentry_dsn: str | None = None,
    traces_sample_rate: float | None = None,
) -> ObservabilityConfig:
    """Build configuration from arguments, falling back to environment variables.

    Environment fallbacks: ``SENTRY_DSN``, ``ENV``, ``SENTRY_TRACES_SAMPLE_RATE``.

    Raises:
        ConfigurationError: If the resulting configuration is invalid.
    """
    dsn = sentry_dsn if sentry_dsn is not None else os.getenv("SENTRY_DSN", "")
    if traces_sample_rate is None:
        try:
            traces_sample_rate = float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1"))
        except ValueError as e:
            raise ConfigurationError(f"Invalid SENTRY_TRACES_SAMPLE_RATE: {e}")

    sentry = SentryConfig(
        enabled=bool(dsn),
        dsn=dsn or None,
        environment=environment or os.getenv("ENV", "development"),
        release=service_version,
        traces_sample_rate=traces_sample_rate,
    )
    sentry.validate()

    return ObservabilityConfig(
        service_name=service_name or "unknown-service",
        service_version=service_version,
        sentry=sentry,
    )

"""
Application configuration settings.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Literal, Self


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Aptitude Test API"
    APP_VERSION: str = "0.1.0"
    ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # API
    API_PREFIX: str = "/api"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8080",
    ]

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Security
    # IMPORTANT: These MUST be set in .env file - no defaults for security
    SECRET_KEY: str = Field(..., description="Application secret key (required)")
    JWT_SECRET_KEY: str = Field(..., description="JWT signing secret key (required)")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    # Refresh token lifetime when the user ticks "remember me" on login
    REMEMBER_ME_REFRESH_DAYS: int = 30
    # Auth cookies are Secure-only outside development
    COOKIE_SECURE: bool = False

    # Test sessions
    # Sessions live max(time_limit_hours + SESSION_GRACE_HOURS, SESSION_MIN_EXPIRY_HOURS)
    SESSION_MIN_EXPIRY_HOURS: int = 24
    SESSION_GRACE_HOURS: int = 2

    # Bounded retry for profile/dashboard reads
    READ_RETRY_ATTEMPTS: int = Field(default=2, ge=1, le=5)
    READ_RETRY_TIMEOUT_SECONDS: float = Field(default=5.0, gt=0.0)

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STRATEGY: Literal["token_bucket", "sliding_window", "fixed_window"] = (
        "fixed_window"
    )
    # Storage backend: "memory" for single-worker, "redis" for multi-worker deployments
    RATE_LIMIT_STORAGE: Literal["memory", "redis"] = "memory"
    # Redis connection URL (required if RATE_LIMIT_STORAGE="redis")
    RATE_LIMIT_REDIS_URL: str = "redis://localhost:6379/0"
    MONITORING_RATE_LIMIT: int = 100  # requests
    MONITORING_RATE_WINDOW: int = 60  # seconds

    # Monitoring ingestion
    MONITORING_MAX_BATCH: int = 50
    MONITORING_CLOCK_SKEW_SECONDS: int = 60

    # Sentry Error Tracking
    SENTRY_DSN: str = Field(
        default="",
        description="Sentry DSN for error tracking (leave empty to disable)",
    )
    SENTRY_TRACES_SAMPLE_RATE: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Sentry traces sample rate (0.0-1.0, 0.1 = 10% of transactions)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields from .env not defined in Settings
    )

    @model_validator(mode="after")
    def validate_session_expiry(self) -> Self:
        """Validate session expiry windows at startup."""
        if self.SESSION_MIN_EXPIRY_HOURS <= 0:
            raise ValueError("SESSION_MIN_EXPIRY_HOURS must be positive")
        if self.SESSION_GRACE_HOURS < 0:
            raise ValueError("SESSION_GRACE_HOURS cannot be negative")
        return self


# mypy doesn't understand that pydantic_settings loads required fields from env vars
settings = Settings()  # type: ignore[call-arg]

"""
Pydantic schemas for authentication endpoints.
"""
from datetime import datetime
from typing import Optional, Self

from pydantic import EmailStr, Field, field_validator, model_validator

from app.core.error_responses import ErrorMessages
from app.core.validators import EmailValidator, PasswordValidator, StringSanitizer
from libs.domain_types import Language, Theme

from .common import CamelModel, DeviceInfo


class UserPreferences(CamelModel):
    """User preference bag stored as JSON on the user row."""

    language: Language = Language.KO
    notifications: bool = True
    theme: Theme = Theme.SYSTEM
    test_reminders: bool = True
    haptic_feedback: bool = True
    auto_save: bool = True


class UserRegister(CamelModel):
    """Schema for user registration request."""

    name: str = Field(..., min_length=2, max_length=50, description="Display name")
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(
        ...,
        min_length=PasswordValidator.MIN_LENGTH,
        max_length=PasswordValidator.MAX_LENGTH,
        description="Password with lower- and uppercase letters and a digit",
    )
    confirm_password: str = Field(..., description="Must equal password")
    preferences: Optional[UserPreferences] = None
    device_info: Optional[DeviceInfo] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return EmailValidator.normalize_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        """Validate password strength."""
        is_valid, error_message = PasswordValidator.validate(v)
        if not is_valid:
            raise ValueError(error_message)
        return v

    @field_validator("name")
    @classmethod
    def sanitize_name(cls, v: str) -> str:
        sanitized = StringSanitizer.sanitize_name(v)
        if len(sanitized) < 2:
            raise ValueError("Name must be at least 2 characters")
        return sanitized

    @model_validator(mode="after")
    def passwords_match(self) -> Self:
        if self.password != self.confirm_password:
            raise ValueError(ErrorMessages.PASSWORDS_DO_NOT_MATCH)
        return self


class UserLogin(CamelModel):
    """Schema for user login request."""

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=1, description="User password")
    remember_me: bool = Field(False, description="Extend refresh token lifetime")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return EmailValidator.normalize_email(v)


class UserResponse(CamelModel):
    """Public view of a user."""

    id: str
    email: str
    name: str
    profile_image: Optional[str] = None
    preferences: Optional[UserPreferences] = None
    last_login_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class AuthTokens(CamelModel):
    access_token: str
    refresh_token: str


class AuthResponse(CamelModel):
    """Payload returned by signup, login and refresh."""

    user: UserResponse
    tokens: AuthTokens


class CurrentUserResponse(CamelModel):
    user: UserResponse

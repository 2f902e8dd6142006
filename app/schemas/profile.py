"""
Pydantic schemas for profile endpoints.
"""
from typing import Optional, Self

from pydantic import EmailStr, Field, field_validator, model_validator

from app.core.error_responses import ErrorMessages
from app.core.validators import EmailValidator, PasswordValidator, StringSanitizer

from .auth import UserPreferences, UserResponse
from .common import CamelModel


class PreferencesResponse(CamelModel):
    preferences: UserPreferences


class PreferencesUpdate(CamelModel):
    """Full replacement of the preference bag."""

    preferences: UserPreferences


class ProfileUpdate(CamelModel):
    """Schema for editing name, email and avatar."""

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    profile_image: Optional[str] = Field(None, max_length=500)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return EmailValidator.normalize_email(v)

    @field_validator("name")
    @classmethod
    def sanitize_name(cls, v: str) -> str:
        sanitized = StringSanitizer.sanitize_name(v)
        if not sanitized:
            raise ValueError("Name is required")
        return sanitized


class PasswordChange(CamelModel):
    """Schema for changing the signed-in user's password."""

    current_password: str = Field(..., min_length=1)
    new_password: str = Field(
        ...,
        min_length=PasswordValidator.MIN_LENGTH,
        max_length=PasswordValidator.MAX_LENGTH,
    )
    confirm_password: Optional[str] = None

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        is_valid, error_message = PasswordValidator.validate(v)
        if not is_valid:
            raise ValueError(error_message)
        return v

    @model_validator(mode="after")
    def passwords_match(self) -> Self:
        if self.confirm_password is not None and self.confirm_password != self.new_password:
            raise ValueError(ErrorMessages.PASSWORDS_DO_NOT_MATCH)
        return self


class ProfileUserResponse(CamelModel):
    """User payload with an optional confirmation message."""

    user: UserResponse
    message: Optional[str] = None

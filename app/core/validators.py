"""
Input validation and sanitization utilities.
"""

import re
import html
from typing import Optional


class PasswordValidator:
    """
    Password strength rules for signup.
    """

    MIN_LENGTH = 8
    MAX_LENGTH = 128

    @classmethod
    def validate(cls, password: str) -> tuple[bool, Optional[str]]:
        """
        Validate password strength.

        Args:
            password: Password to validate

        Returns:
            Tuple of (is_valid, error_message)
        """
        if len(password) < cls.MIN_LENGTH:
            return False, f"Password must be at least {cls.MIN_LENGTH} characters"

        if len(password) > cls.MAX_LENGTH:
            return False, f"Password must not exceed {cls.MAX_LENGTH} characters"

        if not (
            re.search(r"[a-z]", password)
            and re.search(r"[A-Z]", password)
            and re.search(r"\d", password)
        ):
            return False, (
                "Password must contain at least one lowercase letter, "
                "one uppercase letter, and one number"
            )

        return True, None


class StringSanitizer:
    """
    String sanitization for user-supplied and client-reported text.
    """

    # Control characters to strip (except newlines, tabs, carriage returns)
    CONTROL_CHARS_PATTERN = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")

    @classmethod
    def strip_control_chars(cls, value: str) -> str:
        return cls.CONTROL_CHARS_PATTERN.sub("", value).strip()

    @classmethod
    def sanitize_name(cls, name: str) -> str:
        """
        Sanitize a display name.

        Hangul and Latin letters are kept; markup is escaped and runs of
        whitespace collapse to one space.
        """
        name = cls.strip_control_chars(name)
        name = re.sub(r"\s+", " ", name)
        return html.escape(name)

    @classmethod
    def truncate(cls, value: Optional[str], max_length: int) -> Optional[str]:
        """
        Strip control characters and cap length.

        Used for client monitoring payloads, which are stored verbatim.
        """
        if value is None:
            return None
        value = cls.strip_control_chars(value)
        return value[:max_length]


class EmailValidator:
    """
    Email normalization utilities.
    """

    @classmethod
    def normalize_email(cls, email: str) -> str:
        """Lowercase and remove whitespace so lookups are case-insensitive."""
        return email.lower().strip().replace(" ", "")

"""
Authentication: password hashing, JWT issuance and FastAPI dependencies.
"""
from .dependencies import (
    get_current_user,
    get_current_user_from_refresh_token,
    get_current_user_id,
    get_current_user_optional,
    get_user_by_id,
)

__all__ = [
    "get_current_user",
    "get_current_user_from_refresh_token",
    "get_current_user_id",
    "get_current_user_optional",
    "get_user_by_id",
]

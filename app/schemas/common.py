"""
Shared schema building blocks.

The mobile client speaks camelCase JSON, so every schema derives from
``CamelModel``: Python attributes stay snake_case and aliases carry the wire
names. Responses use the ``{"success": true, "data": ...}`` envelope.
"""
from math import ceil
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


def round_seconds(value: Any) -> Any:
    """Round fractional second counts from the client to whole seconds."""
    if isinstance(value, float):
        return round(value)
    return value


class CamelModel(BaseModel):
    """Base model with camelCase aliases that also accepts snake_case input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SuccessResponse(CamelModel, Generic[T]):
    """Success envelope wrapping an endpoint's payload."""

    success: bool = True
    data: T


class MessageResponse(CamelModel):
    """Payload for endpoints that only report an outcome."""

    message: str


class DeviceInfo(CamelModel):
    """Client device snapshot sent with sessions and submissions."""

    user_agent: str = Field(..., max_length=500)
    screen_width: int = Field(..., ge=0)
    screen_height: int = Field(..., ge=0)
    device_pixel_ratio: float = Field(..., gt=0)
    platform: str = Field(..., max_length=100)
    is_mobile: bool
    is_tablet: bool
    connection_type: Optional[str] = Field(None, max_length=50)
    battery_level: Optional[float] = Field(None, ge=0, le=1)


class Pagination(CamelModel):
    """Page metadata for list endpoints."""

    current_page: int
    total_pages: int
    total_count: int
    has_next_page: bool
    has_previous_page: bool
    limit: int

    @classmethod
    def build(cls, page: int, limit: int, total_count: int) -> "Pagination":
        total_pages = ceil(total_count / limit) if limit else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_count=total_count,
            has_next_page=page < total_pages,
            has_previous_page=page > 1,
            limit=limit,
        )

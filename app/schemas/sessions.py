"""
Pydantic schemas for test session endpoints.
"""
from datetime import datetime
from typing import List, Optional, Union

from pydantic import Field, field_validator

from .common import CamelModel, DeviceInfo, round_seconds

AnswerValue = Union[str, int, float, List[str]]


class Answer(CamelModel):
    """A single answer as produced by the client."""

    question_id: str = Field(..., min_length=1, description="Question ID")
    value: AnswerValue = Field(..., description="Selected option value, rating or text")
    time_spent: int = Field(0, ge=0, description="Seconds spent on this question")
    timestamp: datetime = Field(..., description="Client timestamp of the answer")

    @field_validator("time_spent", mode="before")
    @classmethod
    def round_time_spent(cls, v):
        return round_seconds(v)


class SessionCreate(CamelModel):
    """Schema for starting (or resuming) a test session."""

    device_info: Optional[DeviceInfo] = None
    expires_at: Optional[datetime] = Field(
        None, description="Override for the computed expiry"
    )


class SessionUpdate(CamelModel):
    """
    Autosave patch. Only fields present in the request body are applied.
    """

    session_id: Optional[str] = Field(None, description="Session being saved")
    current_question: Optional[int] = Field(None, ge=0)
    answers: Optional[List[Answer]] = None
    time_spent: Optional[int] = Field(None, ge=0, description="Total seconds so far")
    device_info: Optional[DeviceInfo] = None
    last_activity: Optional[datetime] = None

    @field_validator("time_spent", mode="before")
    @classmethod
    def round_time_spent(cls, v):
        return round_seconds(v)


class SessionResponse(CamelModel):
    """Schema for a test session."""

    id: str
    current_question: int
    answers: List[dict]
    time_spent: int
    last_activity: datetime
    expires_at: datetime


class ActiveSessionResponse(CamelModel):
    has_active_session: bool
    session: Optional[SessionResponse] = None


class SessionMutationResponse(CamelModel):
    """Payload for create and autosave."""

    session: SessionResponse
    message: str


class SessionAbandonResponse(CamelModel):
    deleted_count: int
    message: str

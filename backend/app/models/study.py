"""
Study Session Schemas
=====================
Pydantic models for study-session planning and tracking.

Lifecycle: planned → in_progress → completed. A session can be set to
cancelled through a regular update at any point.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from app.models.common import Pagination

StudyStatus = Literal["planned", "in_progress", "completed", "cancelled"]


def _strip_subject(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("Subject must be 1-100 characters")
    return value


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

class StudySessionCreate(BaseModel):
    subject: str = Field(..., min_length=1, max_length=100)
    planned_hours: float = Field(..., ge=0.5, le=12.0)
    start_time: datetime
    end_time: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    mood_session_id: Optional[str] = None
    topics: list[str] = Field(default_factory=list)

    @field_validator("subject")
    @classmethod
    def check_subject(cls, value: Optional[str]) -> Optional[str]:
        return _strip_subject(value)


class StudySessionUpdate(BaseModel):
    subject: Optional[str] = Field(default=None, min_length=1, max_length=100)
    planned_hours: Optional[float] = Field(default=None, ge=0.5, le=12.0)
    actual_hours: Optional[float] = Field(default=None, ge=0.0, le=12.0)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    status: Optional[StudyStatus] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    productivity: Optional[int] = Field(default=None, ge=1, le=10)
    difficulty: Optional[int] = Field(default=None, ge=1, le=10)
    topics: Optional[list[str]] = None

    @field_validator("subject")
    @classmethod
    def check_subject(cls, value: Optional[str]) -> Optional[str]:
        return _strip_subject(value)


class StudySessionComplete(BaseModel):
    actual_hours: float = Field(..., ge=0.0, le=12.0)
    productivity: Optional[int] = Field(default=None, ge=1, le=10)
    difficulty: Optional[int] = Field(default=None, ge=1, le=10)
    notes: Optional[str] = Field(default=None, max_length=1000)


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------

class LinkedMoodSummary(BaseModel):
    """The mood session a study session was planned from, if any."""

    mood_type: str
    recommended_study_hours: float


class StudySessionResponse(BaseModel):
    id: str
    mood_session_id: Optional[str] = None
    subject: str
    planned_hours: float
    actual_hours: Optional[float] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    status: StudyStatus
    notes: Optional[str] = None
    productivity: Optional[int] = None
    difficulty: Optional[int] = None
    topics: list[str] = Field(default_factory=list)
    mood_session: Optional[LinkedMoodSummary] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StudySessionListResponse(BaseModel):
    sessions: list[StudySessionResponse]
    pagination: Pagination


class UpcomingSessionsResponse(BaseModel):
    sessions: list[StudySessionResponse]


class SubjectStats(BaseModel):
    count: int
    total_hours: float
    average_productivity: float


class StudyAnalyticsResponse(BaseModel):
    total_sessions: int
    total_planned_hours: float
    total_actual_hours: float
    average_productivity: float
    average_difficulty: float
    subject_stats: dict[str, SubjectStats]
    days: int

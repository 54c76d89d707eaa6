"""
Mood Session Schemas
====================
Pydantic models for the mood analysis API.

Key design decisions:
- The client sends only free text; the label, confidence, hours and tips
  are always computed server-side (Gemini or the local fallback).
- ``analysis_source`` records which path produced the analysis so the
  app can show a softer "estimated" badge for fallback results.
- ``ai_analysis`` is stored as the full MoodAssessment JSON, so the chat
  endpoint can rebuild the assessment later without re-analysing.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from app.models.ai import MoodAssessment
from app.models.common import Pagination
from app.models.study import StudySessionResponse


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

class MoodTextAnalysisRequest(BaseModel):
    mood_description: str = Field(
        ...,
        description="How the student feels today, in their own words (10-1000 chars).",
    )

    @field_validator("mood_description")
    @classmethod
    def trim_and_bound(cls, value: str) -> str:
        value = value.strip()
        if not 10 <= len(value) <= 1000:
            raise ValueError("Mood description must be 10-1000 characters")
        return value


class MoodTranscriptAnalysisRequest(BaseModel):
    transcript: str = Field(
        ...,
        min_length=1,
        max_length=5000,
        description="Speech-to-text transcription of a voice check-in.",
    )
    mood_description: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("transcript")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Transcript must not be empty")
        return value.strip()


class MoodSessionUpdate(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=1000)
    applied_to_plan: Optional[bool] = None


class ApplyToPlanRequest(BaseModel):
    subject: str = Field(..., min_length=1, max_length=100)
    start_time: datetime
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("subject")
    @classmethod
    def strip_subject(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Subject is required")
        return value


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------

class MoodSessionResponse(BaseModel):
    id: str
    mood_type: str
    mood_description: str
    ai_analysis: MoodAssessment
    recommended_study_hours: float
    confidence: float
    study_tips: list[str] = Field(default_factory=list)
    analysis_source: Literal["remote", "local"] = "local"
    applied_to_plan: bool = False
    session_date: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MoodHistoryResponse(BaseModel):
    mood_sessions: list[MoodSessionResponse]
    pagination: Pagination


class MoodAnalyticsResponse(BaseModel):
    total_sessions: int
    average_confidence: float
    average_study_hours: float
    mood_distribution: dict[str, int]
    applied_to_plan_count: int
    applied_to_plan_percentage: float
    days: int


class ApplyToPlanResponse(BaseModel):
    study_session: StudySessionResponse
    mood_session: MoodSessionResponse

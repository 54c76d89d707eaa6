"""
AI Analysis Schemas
===================
Value types shared by the mood classifier, the chat responder and the
remote Gemini gateway. Both the remote path and the local fallback
produce exactly these shapes, so the routers and the database never
need to know which path answered.
"""

from __future__ import annotations

from typing import Literal, Optional, get_args

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Allowed values
# ---------------------------------------------------------------------------

MoodLabel = Literal[
    "happy",
    "excited",
    "tired",
    "stressed",
    "bored",
    "anxious",
    "focused",
    "relaxed",
    "neutral",
    "sad",
    "angry",
]

VALID_MOOD_LABELS = frozenset(get_args(MoodLabel))

MIN_RECOMMENDED_HOURS = 0.5
MAX_RECOMMENDED_HOURS = 8.0
MAX_STUDY_TIPS = 5


# ---------------------------------------------------------------------------
# Mood assessment
# ---------------------------------------------------------------------------

class MoodContext(BaseModel):
    """Qualitative read of the mood behind an assessment."""

    model_config = {"frozen": True}

    emotional_tone: str = ""
    energy_level: str = ""
    stress_indicators: list[str] = Field(default_factory=list)


class MoodAssessment(BaseModel):
    """Mood label plus the study recommendation derived from it."""

    model_config = {"frozen": True}

    mood_label: MoodLabel = Field(
        ...,
        description="Detected mood. 'neutral' when nothing recognisable was found.",
    )
    confidence: float = Field(..., ge=0.0, le=1.0)
    recommended_hours: float = Field(
        ...,
        ge=MIN_RECOMMENDED_HOURS,
        le=MAX_RECOMMENDED_HOURS,
        description="Suggested study duration for today, in hours.",
    )
    explanation: str = ""
    study_tips: list[str] = Field(default_factory=list, max_length=MAX_STUDY_TIPS)
    mood_context: MoodContext = Field(default_factory=MoodContext)


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------

class ConversationTurn(BaseModel):
    """One prior message in a chat, oldest first in a history sequence."""

    model_config = {"frozen": True}

    role: Literal["user", "assistant"]
    content: str


class MoodInsights(BaseModel):
    model_config = {"frozen": True}

    mood_impact: str = ""
    encouragement: str = ""


class ChatReply(BaseModel):
    """Assistant answer to a chat message."""

    model_config = {"frozen": True}

    content: str = Field(..., min_length=1)
    suggestions: list[str] = Field(default_factory=list)
    study_recommendations: list[str] = Field(default_factory=list)
    mood_insights: MoodInsights = Field(default_factory=MoodInsights)


class StudyContext(BaseModel):
    """Optional client-supplied context forwarded to the chat prompt."""

    current_subject: Optional[str] = Field(default=None, max_length=100)
    upcoming_deadline: Optional[str] = Field(default=None, max_length=200)
    hours_studied_today: Optional[float] = Field(default=None, ge=0.0, le=24.0)
    notes: Optional[str] = Field(default=None, max_length=500)

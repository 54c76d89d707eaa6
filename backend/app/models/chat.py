"""
Chat Schemas
============
Pydantic models for chat sessions and messages.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from app.models.ai import StudyContext
from app.models.common import Pagination


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

class ChatSessionCreate(BaseModel):
    title: str = Field(default="New Chat Session", min_length=1, max_length=255)


class ChatSessionUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    is_active: Optional[bool] = None


class SendMessageRequest(BaseModel):
    content: str = Field(..., description="Message text, 1-2000 characters after trimming.")
    session_id: Optional[str] = Field(
        default=None,
        description="Existing session to post into. A new session is created when omitted.",
    )
    mood_session_id: Optional[str] = Field(
        default=None,
        description="Mood analysis to tailor the reply to.",
    )
    study_context: Optional[StudyContext] = None

    @field_validator("content")
    @classmethod
    def trim_content(cls, value: str) -> str:
        value = value.strip()
        if not 1 <= len(value) <= 2000:
            raise ValueError("Message must be 1-2000 characters")
        return value


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------

class ChatMessageResponse(BaseModel):
    id: str
    session_id: str
    message_type: Literal["user", "assistant"]
    content: str
    mood_context: Optional[dict[str, Any]] = None
    study_context: Optional[dict[str, Any]] = None
    ai_response: Optional[dict[str, Any]] = None
    is_read: bool = False
    created_at: Optional[datetime] = None


class ChatSessionResponse(BaseModel):
    id: str
    title: str
    is_active: bool = True
    last_message_at: Optional[datetime] = None
    message_count: int = 0
    context: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_message: Optional[ChatMessageResponse] = None


class ChatSessionDetailResponse(ChatSessionResponse):
    messages: list[ChatMessageResponse] = Field(default_factory=list)


class ChatSessionListResponse(BaseModel):
    sessions: list[ChatSessionResponse]
    pagination: Pagination


class ChatMessageListResponse(BaseModel):
    messages: list[ChatMessageResponse]
    pagination: Pagination


class SendMessageResponse(BaseModel):
    session: ChatSessionResponse
    user_message: ChatMessageResponse
    assistant_message: ChatMessageResponse
    reply_source: Literal["remote", "local"]


class UnreadCountResponse(BaseModel):
    unread_count: int


class ChatAnalyticsResponse(BaseModel):
    total_sessions: int
    total_messages: int
    average_messages_per_session: float
    active_sessions: int
    days: int


class MarkReadResponse(BaseModel):
    marked_read: int

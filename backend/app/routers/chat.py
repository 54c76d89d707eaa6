"""
Chat Router
===========
Chat sessions with the study assistant.

    GET    /api/v1/chat/sessions                   — list, most recent activity first
    POST   /api/v1/chat/sessions                   — start an empty session
    GET    /api/v1/chat/sessions/{id}              — session with all messages
    PUT    /api/v1/chat/sessions/{id}              — rename / archive
    DELETE /api/v1/chat/sessions/{id}              — remove with its messages
    POST   /api/v1/chat/send-message               — post a message and get a reply
    GET    /api/v1/chat/sessions/{id}/messages     — paginated messages
    PUT    /api/v1/chat/sessions/{id}/mark-read    — mark assistant replies read
    GET    /api/v1/chat/unread-count               — unread assistant replies
    GET    /api/v1/chat/analytics                  — usage over the last N days

send-message flow:
    1. Resolve the session and the mood to tailor the reply to (the
       request's mood session, else the last one used in this session),
       creating the session only once both checks pass
    2. Load the recent history, then store the user's message
    3. AIService → Gemini reply, or the templated fallback
    4. Store the assistant message and bump the session counters

The reply step never fails the request. A Gemini outage only changes
which path wrote the answer (``reply_source``).
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Query, status
from pydantic import ValidationError

from app.auth import get_authenticated_user
from app.db.supabase import get_supabase_client
from app.models.ai import ConversationTurn, MoodAssessment
from app.models.chat import (
    ChatAnalyticsResponse,
    ChatMessageListResponse,
    ChatMessageResponse,
    ChatSessionCreate,
    ChatSessionDetailResponse,
    ChatSessionListResponse,
    ChatSessionResponse,
    ChatSessionUpdate,
    MarkReadResponse,
    SendMessageRequest,
    SendMessageResponse,
    UnreadCountResponse,
)
from app.models.common import Pagination, page_bounds
from app.services.ai_service import get_ai_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/chat", tags=["chat"])

# Messages loaded as conversation history for a reply
HISTORY_LIMIT = 10

_NOT_FOUND = {"message": "Chat session not found", "code": "chat_session_not_found"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_owned_chat_session(db, session_id: str, user_id: str) -> dict:
    result = (
        db.table("chat_sessions")
        .select("*")
        .eq("id", session_id)
        .eq("user_id", user_id)
        .maybe_single()
        .execute()
    )
    if not result or not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    return result.data


def _create_chat_session(db, user_id: str, title: str) -> dict:
    result = db.table("chat_sessions").insert({
        "user_id": user_id,
        "title": title,
        "is_active": True,
        "last_message_at": _now_iso(),
        "message_count": 0,
        "context": {},
    }).execute()

    if not result.data:
        logger.error("Failed to insert chat session for user %s", user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Failed to save chat session", "code": "db_error"},
        )
    return result.data[0]


def _insert_message(db, row: dict) -> dict:
    result = db.table("chat_messages").insert(row).execute()
    if not result.data:
        logger.error("Failed to insert %s chat message in session %s", row["message_type"], row["session_id"])
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Failed to save chat message", "code": "db_error"},
        )
    return result.data[0]


def _load_mood(db, mood_session_id: Optional[str], user_id: str, required: bool) -> Optional[MoodAssessment]:
    """Rebuild the stored MoodAssessment for a mood session.

    Raises 404 when *required* and the session is missing; otherwise a
    missing or unreadable analysis just means "no mood".
    """
    if not mood_session_id:
        return None

    result = (
        db.table("mood_sessions")
        .select("id, ai_analysis")
        .eq("id", mood_session_id)
        .eq("user_id", user_id)
        .maybe_single()
        .execute()
    )
    if not result or not result.data:
        if required:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"message": "Mood session not found", "code": "mood_session_not_found"},
            )
        return None

    try:
        return MoodAssessment.model_validate(result.data.get("ai_analysis") or {})
    except ValidationError:
        logger.warning("Stored analysis for mood session %s is unreadable, ignoring", mood_session_id)
        return None


def _load_history(db, session_id: str) -> list[ConversationTurn]:
    """The last HISTORY_LIMIT messages of a session, oldest first."""
    result = (
        db.table("chat_messages")
        .select("message_type, content, created_at")
        .eq("session_id", session_id)
        .order("created_at", desc=True)
        .limit(HISTORY_LIMIT)
        .execute()
    )
    return [
        ConversationTurn(role=row["message_type"], content=row["content"])
        for row in reversed(result.data or [])
    ]


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

@router.get("/sessions", response_model=ChatSessionListResponse, summary="List chat sessions")
async def list_chat_sessions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> ChatSessionListResponse:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()

    start, end = page_bounds(page, limit)
    result = (
        db.table("chat_sessions")
        .select("*", count="exact")
        .eq("user_id", user["id"])
        .order("last_message_at", desc=True)
        .range(start, end)
        .execute()
    )
    rows = result.data or []
    total = result.count if result.count is not None else len(rows)

    sessions = []
    for row in rows:
        last = (
            db.table("chat_messages")
            .select("*")
            .eq("session_id", row["id"])
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        sessions.append(ChatSessionResponse(
            **row,
            last_message=ChatMessageResponse(**last.data[0]) if last.data else None,
        ))

    return ChatSessionListResponse(sessions=sessions, pagination=Pagination.build(page, limit, total))


@router.post(
    "/sessions",
    response_model=ChatSessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a chat session",
)
async def create_chat_session(
    body: ChatSessionCreate,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> ChatSessionResponse:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()
    return ChatSessionResponse(**_create_chat_session(db, user["id"], body.title.strip() or "New Chat Session"))


@router.get(
    "/sessions/{session_id}",
    response_model=ChatSessionDetailResponse,
    summary="Get a chat session with its messages",
)
async def get_chat_session(
    session_id: str,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> ChatSessionDetailResponse:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()
    session = _get_owned_chat_session(db, session_id, user["id"])

    messages = (
        db.table("chat_messages")
        .select("*")
        .eq("session_id", session_id)
        .order("created_at", desc=False)
        .execute()
    )

    return ChatSessionDetailResponse(
        **session,
        messages=[ChatMessageResponse(**m) for m in (messages.data or [])],
    )


@router.put("/sessions/{session_id}", response_model=ChatSessionResponse, summary="Rename or archive a session")
async def update_chat_session(
    session_id: str,
    body: ChatSessionUpdate,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> ChatSessionResponse:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()
    session = _get_owned_chat_session(db, session_id, user["id"])

    update_data = body.model_dump(exclude_unset=True, exclude_none=True)
    if not update_data:
        return ChatSessionResponse(**session)

    update_data["updated_at"] = _now_iso()
    result = (
        db.table("chat_sessions")
        .update(update_data)
        .eq("id", session_id)
        .eq("user_id", user["id"])
        .execute()
    )
    return ChatSessionResponse(**(result.data[0] if result.data else {**session, **update_data}))


@router.delete(
    "/sessions/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a session and its messages",
)
async def delete_chat_session(
    session_id: str,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> None:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()
    _get_owned_chat_session(db, session_id, user["id"])

    db.table("chat_messages").delete().eq("session_id", session_id).execute()
    db.table("chat_sessions").delete().eq("id", session_id).eq("user_id", user["id"]).execute()
    logger.info("Deleted chat session %s for user %s", session_id, user["id"])


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

@router.post(
    "/send-message",
    response_model=SendMessageResponse,
    summary="Send a message to the study assistant",
    responses={
        200: {"description": "Message stored and reply generated"},
        401: {"description": "Authentication required"},
        404: {"description": "Chat session or mood session not found"},
        422: {"description": "Message empty or longer than 2000 characters"},
    },
)
async def send_message(
    body: SendMessageRequest,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> SendMessageResponse:
    user = get_authenticated_user(authorization)
    user_id: str = user["id"]
    db = get_supabase_client()

    # ------------------------------------------------------------------
    # 1. Session and mood (validated before anything is written)
    # ------------------------------------------------------------------
    session = _get_owned_chat_session(db, body.session_id, user_id) if body.session_id else None
    session_context: dict = (session or {}).get("context") or {}

    if body.mood_session_id:
        mood_session_id = body.mood_session_id
        mood = _load_mood(db, mood_session_id, user_id, required=True)
    else:
        mood_session_id = session_context.get("last_mood_session_id")
        mood = _load_mood(db, mood_session_id, user_id, required=False)

    if session is None:
        session = _create_chat_session(db, user_id, "New Chat Session")
    session_id: str = session["id"]

    mood_context = (
        {"mood_session_id": mood_session_id, "mood_label": mood.mood_label} if mood else None
    )
    study_context = body.study_context.model_dump(exclude_none=True) if body.study_context else None

    # ------------------------------------------------------------------
    # 2. History, then the user's message
    # ------------------------------------------------------------------
    history = _load_history(db, session_id)

    user_message = _insert_message(db, {
        "session_id": session_id,
        "user_id": user_id,
        "message_type": "user",
        "content": body.content,
        "mood_context": mood_context,
        "study_context": study_context,
        "is_read": True,
    })

    # ------------------------------------------------------------------
    # 3. Reply
    # ------------------------------------------------------------------
    outcome = await get_ai_service().generate_chat_reply(
        body.content, history, mood, body.study_context,
    )
    reply = outcome.result

    assistant_message = _insert_message(db, {
        "session_id": session_id,
        "user_id": user_id,
        "message_type": "assistant",
        "content": reply.content,
        "ai_response": {
            **reply.model_dump(mode="json", exclude={"content"}),
            "source": outcome.source,
            "fallback_reason": getattr(outcome, "reason", None),
        },
        "mood_context": mood_context,
        "study_context": study_context,
        "is_read": False,
    })

    # ------------------------------------------------------------------
    # 4. Session bookkeeping
    # ------------------------------------------------------------------
    new_context = {**session_context}
    if mood:
        new_context["last_mood_session_id"] = mood_session_id
        new_context["last_mood_label"] = mood.mood_label
    if study_context:
        new_context["last_study_context"] = study_context

    update_data = {
        "last_message_at": _now_iso(),
        "message_count": int(session.get("message_count") or 0) + 2,
        "context": new_context,
        "updated_at": _now_iso(),
    }
    updated = (
        db.table("chat_sessions")
        .update(update_data)
        .eq("id", session_id)
        .eq("user_id", user_id)
        .execute()
    )

    logger.info(
        "Chat reply in session %s for user %s (source=%s, history=%d)",
        session_id, user_id, outcome.source, len(history),
    )

    return SendMessageResponse(
        session=ChatSessionResponse(**(updated.data[0] if updated.data else {**session, **update_data})),
        user_message=ChatMessageResponse(**user_message),
        assistant_message=ChatMessageResponse(**assistant_message),
        reply_source=outcome.source,
    )


@router.get(
    "/sessions/{session_id}/messages",
    response_model=ChatMessageListResponse,
    summary="List messages in a session, oldest first",
)
async def list_session_messages(
    session_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> ChatMessageListResponse:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()
    _get_owned_chat_session(db, session_id, user["id"])

    start, end = page_bounds(page, limit)
    result = (
        db.table("chat_messages")
        .select("*", count="exact")
        .eq("session_id", session_id)
        .order("created_at", desc=False)
        .range(start, end)
        .execute()
    )
    rows = result.data or []
    total = result.count if result.count is not None else len(rows)

    return ChatMessageListResponse(
        messages=[ChatMessageResponse(**row) for row in rows],
        pagination=Pagination.build(page, limit, total),
    )


@router.put(
    "/sessions/{session_id}/mark-read",
    response_model=MarkReadResponse,
    summary="Mark assistant replies in a session as read",
)
async def mark_session_read(
    session_id: str,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> MarkReadResponse:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()
    _get_owned_chat_session(db, session_id, user["id"])

    result = (
        db.table("chat_messages")
        .update({"is_read": True})
        .eq("session_id", session_id)
        .eq("user_id", user["id"])
        .eq("message_type", "assistant")
        .eq("is_read", False)
        .execute()
    )
    return MarkReadResponse(marked_read=len(result.data or []))


@router.get("/unread-count", response_model=UnreadCountResponse, summary="Count unread assistant replies")
async def get_unread_count(
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> UnreadCountResponse:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()

    result = (
        db.table("chat_messages")
        .select("id", count="exact")
        .eq("user_id", user["id"])
        .eq("message_type", "assistant")
        .eq("is_read", False)
        .execute()
    )
    count = result.count if result.count is not None else len(result.data or [])
    return UnreadCountResponse(unread_count=count)


@router.get("/analytics", response_model=ChatAnalyticsResponse, summary="Chat usage over the last N days")
async def get_chat_analytics(
    days: int = Query(30, ge=1, le=365),
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> ChatAnalyticsResponse:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()

    since = datetime.now(timezone.utc) - timedelta(days=days)
    sessions = (
        db.table("chat_sessions")
        .select("id, is_active")
        .eq("user_id", user["id"])
        .gte("created_at", since.isoformat())
        .execute()
    ).data or []

    total_messages = 0
    if sessions:
        messages = (
            db.table("chat_messages")
            .select("id", count="exact")
            .in_("session_id", [s["id"] for s in sessions])
            .execute()
        )
        total_messages = messages.count if messages.count is not None else len(messages.data or [])

    total_sessions = len(sessions)
    return ChatAnalyticsResponse(
        total_sessions=total_sessions,
        total_messages=total_messages,
        average_messages_per_session=round(total_messages / total_sessions, 2) if total_sessions else 0.0,
        active_sessions=sum(1 for s in sessions if s.get("is_active")),
        days=days,
    )

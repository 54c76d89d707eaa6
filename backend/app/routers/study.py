"""
Study Session Router
====================
Plan and track study sessions.

    GET    /api/v1/study/sessions                — list (filter by status / subject)
    POST   /api/v1/study/sessions                — plan a new session
    GET    /api/v1/study/sessions/{id}           — details
    PUT    /api/v1/study/sessions/{id}           — edit
    DELETE /api/v1/study/sessions/{id}           — remove
    POST   /api/v1/study/sessions/{id}/start     — planned → in_progress
    POST   /api/v1/study/sessions/{id}/complete  — in_progress → completed
    GET    /api/v1/study/analytics               — completed-session stats
    GET    /api/v1/study/upcoming                — planned sessions from now on

Sessions planned from a mood analysis carry ``mood_session_id``; list and
detail responses include a short summary of that mood.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Query, status

from app.auth import get_authenticated_user
from app.db.supabase import get_supabase_client
from app.models.common import Pagination, page_bounds
from app.models.study import (
    StudyAnalyticsResponse,
    StudySessionComplete,
    StudySessionCreate,
    StudySessionListResponse,
    StudySessionResponse,
    StudySessionUpdate,
    StudyStatus,
    UpcomingSessionsResponse,
)
from app.services.analytics import summarise_study_sessions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/study", tags=["study"])

_NOT_FOUND = {"message": "Study session not found", "code": "study_session_not_found"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_owned_study_session(
    db,
    session_id: str,
    user_id: str,
    required_status: Optional[str] = None,
    not_found: Optional[dict] = None,
) -> dict:
    """Fetch a study session belonging to *user_id* (optionally in a given status) or raise 404."""
    query = db.table("study_sessions").select("*").eq("id", session_id).eq("user_id", user_id)
    if required_status:
        query = query.eq("status", required_status)
    result = query.maybe_single().execute()

    if not result or not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found or _NOT_FOUND)
    return result.data


def _attach_mood_summaries(db, rows: list[dict]) -> list[StudySessionResponse]:
    """Build responses, embedding the linked mood session's type and hours."""
    mood_ids = sorted({row["mood_session_id"] for row in rows if row.get("mood_session_id")})
    moods: dict[str, dict] = {}

    if mood_ids:
        mood_result = (
            db.table("mood_sessions")
            .select("id, mood_type, recommended_study_hours")
            .in_("id", mood_ids)
            .execute()
        )
        moods = {m["id"]: m for m in (mood_result.data or [])}

    responses = []
    for row in rows:
        mood = moods.get(row.get("mood_session_id") or "")
        responses.append(StudySessionResponse(
            **{k: v for k, v in row.items() if k != "mood_session"},
            mood_session=(
                {"mood_type": mood["mood_type"], "recommended_study_hours": mood["recommended_study_hours"]}
                if mood else None
            ),
        ))
    return responses


def _apply_update(db, session_id: str, user_id: str, current: dict, update_data: dict) -> dict:
    update_data = {**update_data, "updated_at": _now_iso()}
    result = (
        db.table("study_sessions")
        .update(update_data)
        .eq("id", session_id)
        .eq("user_id", user_id)
        .execute()
    )
    return result.data[0] if result.data else {**current, **update_data}


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------

@router.get("/sessions", response_model=StudySessionListResponse, summary="List study sessions")
async def list_study_sessions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: Optional[StudyStatus] = Query(None, alias="status"),
    subject: Optional[str] = Query(None, max_length=100, description="Case-insensitive subject match"),
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> StudySessionListResponse:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()

    query = db.table("study_sessions").select("*", count="exact").eq("user_id", user["id"])
    if status_filter:
        query = query.eq("status", status_filter)
    if subject:
        query = query.ilike("subject", f"%{subject}%")

    start, end = page_bounds(page, limit)
    result = query.order("start_time", desc=True).range(start, end).execute()

    rows = result.data or []
    total = result.count if result.count is not None else len(rows)

    return StudySessionListResponse(
        sessions=_attach_mood_summaries(db, rows),
        pagination=Pagination.build(page, limit, total),
    )


@router.post(
    "/sessions",
    response_model=StudySessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Plan a study session",
    responses={
        201: {"description": "Study session created"},
        404: {"description": "Linked mood session not found"},
        422: {"description": "Validation error (hours, subject, etc.)"},
    },
)
async def create_study_session(
    body: StudySessionCreate,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> StudySessionResponse:
    user = get_authenticated_user(authorization)
    user_id: str = user["id"]
    db = get_supabase_client()

    if body.mood_session_id:
        linked = (
            db.table("mood_sessions")
            .select("id")
            .eq("id", body.mood_session_id)
            .eq("user_id", user_id)
            .maybe_single()
            .execute()
        )
        if not linked or not linked.data:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"message": "Mood session not found", "code": "mood_session_not_found"},
            )

    row = {
        "user_id": user_id,
        "mood_session_id": body.mood_session_id,
        "subject": body.subject,
        "planned_hours": body.planned_hours,
        "start_time": body.start_time.isoformat(),
        "end_time": body.end_time.isoformat() if body.end_time else None,
        "status": "planned",
        "notes": body.notes,
        "topics": body.topics,
    }

    result = db.table("study_sessions").insert(row).execute()

    if not result.data:
        logger.error("Failed to insert study session for user %s", user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Failed to save study session", "code": "db_error"},
        )

    return _attach_mood_summaries(db, result.data[:1])[0]


@router.get("/analytics", response_model=StudyAnalyticsResponse, summary="Completed-session analytics")
async def get_study_analytics(
    days: int = Query(30, ge=1, le=365),
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> StudyAnalyticsResponse:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()

    since = datetime.now(timezone.utc) - timedelta(days=days)
    result = (
        db.table("study_sessions")
        .select("subject, planned_hours, actual_hours, productivity, difficulty, start_time")
        .eq("user_id", user["id"])
        .eq("status", "completed")
        .gte("start_time", since.isoformat())
        .order("start_time", desc=False)
        .execute()
    )

    return StudyAnalyticsResponse(**summarise_study_sessions(result.data or []), days=days)


@router.get("/upcoming", response_model=UpcomingSessionsResponse, summary="Upcoming planned sessions")
async def get_upcoming_sessions(
    limit: int = Query(10, ge=1, le=50),
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> UpcomingSessionsResponse:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()

    result = (
        db.table("study_sessions")
        .select("*")
        .eq("user_id", user["id"])
        .eq("status", "planned")
        .gte("start_time", _now_iso())
        .order("start_time", desc=False)
        .limit(limit)
        .execute()
    )

    return UpcomingSessionsResponse(sessions=_attach_mood_summaries(db, result.data or []))


# ---------------------------------------------------------------------------
# Single session
# ---------------------------------------------------------------------------

@router.get("/sessions/{session_id}", response_model=StudySessionResponse, summary="Get a study session")
async def get_study_session(
    session_id: str,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> StudySessionResponse:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()
    session = _get_owned_study_session(db, session_id, user["id"])
    return _attach_mood_summaries(db, [session])[0]


@router.put("/sessions/{session_id}", response_model=StudySessionResponse, summary="Update a study session")
async def update_study_session(
    session_id: str,
    body: StudySessionUpdate,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> StudySessionResponse:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()
    session = _get_owned_study_session(db, session_id, user["id"])

    update_data = body.model_dump(exclude_unset=True, exclude_none=True, mode="json")
    if not update_data:
        return _attach_mood_summaries(db, [session])[0]

    updated = _apply_update(db, session_id, user["id"], session, update_data)
    return _attach_mood_summaries(db, [updated])[0]


@router.delete(
    "/sessions/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a study session",
)
async def delete_study_session(
    session_id: str,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> None:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()
    _get_owned_study_session(db, session_id, user["id"])

    db.table("study_sessions").delete().eq("id", session_id).eq("user_id", user["id"]).execute()
    logger.info("Deleted study session %s for user %s", session_id, user["id"])


@router.post(
    "/sessions/{session_id}/start",
    response_model=StudySessionResponse,
    summary="Start a planned session",
    responses={404: {"description": "Not found, or not in 'planned' status"}},
)
async def start_study_session(
    session_id: str,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> StudySessionResponse:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()
    session = _get_owned_study_session(
        db, session_id, user["id"],
        required_status="planned",
        not_found={
            "message": "Study session not found or cannot be started",
            "code": "study_session_not_startable",
        },
    )

    updated = _apply_update(
        db, session_id, user["id"], session,
        {"status": "in_progress", "start_time": _now_iso()},
    )
    logger.info("Started study session %s for user %s", session_id, user["id"])
    return _attach_mood_summaries(db, [updated])[0]


@router.post(
    "/sessions/{session_id}/complete",
    response_model=StudySessionResponse,
    summary="Complete an in-progress session",
    responses={404: {"description": "Not found, or not in 'in_progress' status"}},
)
async def complete_study_session(
    session_id: str,
    body: StudySessionComplete,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> StudySessionResponse:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()
    session = _get_owned_study_session(
        db, session_id, user["id"],
        required_status="in_progress",
        not_found={
            "message": "Study session not found or cannot be completed",
            "code": "study_session_not_completable",
        },
    )

    updated = _apply_update(
        db, session_id, user["id"], session,
        {
            "status": "completed",
            "end_time": _now_iso(),
            "actual_hours": body.actual_hours,
            "productivity": body.productivity,
            "difficulty": body.difficulty,
            "notes": body.notes or session.get("notes"),
        },
    )
    logger.info(
        "Completed study session %s for user %s (%.1fh actual)",
        session_id, user["id"], body.actual_hours,
    )
    return _attach_mood_summaries(db, [updated])[0]

"""
Mood Session Router
===================
POST /api/v1/mood/analyze-text       — Analyse a written mood description
POST /api/v1/mood/analyze-transcript — Analyse a voice check-in transcript
GET  /api/v1/mood/history            — Paginated mood history
GET  /api/v1/mood/analytics/summary  — Mood analytics for the last N days
GET/PUT/DELETE /api/v1/mood/{id}     — Read, annotate or remove a session
POST /api/v1/mood/{id}/apply-to-plan — Turn a mood session into a study session

Analysis always succeeds from the user's point of view: AIService tries
Gemini first and answers from the local keyword classifier if Gemini is
disabled, down, slow, or returns something unparseable. The stored row
records which path produced the analysis in ``analysis_source``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Query, status

from app.auth import get_authenticated_user
from app.db.supabase import get_supabase_client
from app.models.ai import MoodAssessment
from app.models.common import Pagination, page_bounds
from app.models.mood import (
    ApplyToPlanRequest,
    ApplyToPlanResponse,
    MoodAnalyticsResponse,
    MoodHistoryResponse,
    MoodSessionResponse,
    MoodSessionUpdate,
    MoodTextAnalysisRequest,
    MoodTranscriptAnalysisRequest,
)
from app.models.study import StudySessionResponse
from app.services.ai_service import AnalysisOutcome, get_ai_service
from app.services.analytics import summarise_mood_sessions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/mood", tags=["mood"])

_NOT_FOUND = {"message": "Mood session not found", "code": "mood_session_not_found"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_owned_mood_session(db, session_id: str, user_id: str) -> dict:
    """Fetch a mood session belonging to *user_id* or raise 404."""
    result = (
        db.table("mood_sessions")
        .select("*")
        .eq("id", session_id)
        .eq("user_id", user_id)
        .maybe_single()
        .execute()
    )
    if not result or not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    return result.data


def _store_mood_session(
    db,
    user_id: str,
    description: str,
    outcome: AnalysisOutcome[MoodAssessment],
) -> dict:
    assessment = outcome.result
    row = {
        "user_id": user_id,
        "mood_type": assessment.mood_label,
        "mood_description": description,
        "ai_analysis": assessment.model_dump(mode="json"),
        "recommended_study_hours": assessment.recommended_hours,
        "confidence": assessment.confidence,
        "study_tips": assessment.study_tips,
        "analysis_source": outcome.source,
        "applied_to_plan": False,
        "session_date": _now_iso(),
    }

    result = db.table("mood_sessions").insert(row).execute()

    if not result.data:
        logger.error("Failed to insert mood session for user %s", user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Failed to save mood session", "code": "db_error"},
        )

    stored = result.data[0]
    logger.info(
        "Mood session %s stored for user %s: %s (source=%s, confidence=%.2f)",
        stored.get("id"), user_id, assessment.mood_label, outcome.source, assessment.confidence,
    )
    return stored


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

@router.post(
    "/analyze-text",
    response_model=MoodSessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Analyse mood from a text description",
    description=(
        "Classifies the student's mood from a short description and stores a mood "
        "session with a recommended study duration and tips."
    ),
    responses={
        201: {"description": "Mood session created"},
        401: {"description": "Authentication required"},
        422: {"description": "Description missing or not 10-1000 characters"},
    },
)
async def analyze_text(
    body: MoodTextAnalysisRequest,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> MoodSessionResponse:
    user = get_authenticated_user(authorization)

    outcome = await get_ai_service().analyze_text_mood(body.mood_description)

    db = get_supabase_client()
    stored = _store_mood_session(db, user["id"], body.mood_description, outcome)
    return MoodSessionResponse(**stored)


@router.post(
    "/analyze-transcript",
    response_model=MoodSessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Analyse mood from a voice transcript",
    description=(
        "Classifies mood from the transcription of a voice check-in. Audio is "
        "transcribed on the client; only text is accepted here."
    ),
)
async def analyze_transcript(
    body: MoodTranscriptAnalysisRequest,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> MoodSessionResponse:
    user = get_authenticated_user(authorization)

    outcome = await get_ai_service().analyze_transcript_mood(body.transcript)

    description = (body.mood_description or "").strip() or body.transcript
    db = get_supabase_client()
    stored = _store_mood_session(db, user["id"], description, outcome)
    return MoodSessionResponse(**stored)


# ---------------------------------------------------------------------------
# History & analytics
# ---------------------------------------------------------------------------

@router.get(
    "/history",
    response_model=MoodHistoryResponse,
    summary="List mood sessions, newest first",
)
async def get_mood_history(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    days: Optional[int] = Query(None, ge=1, le=365, description="Only sessions from the last N days"),
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> MoodHistoryResponse:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()

    query = db.table("mood_sessions").select("*", count="exact").eq("user_id", user["id"])
    if days:
        since = datetime.now(timezone.utc) - timedelta(days=days)
        query = query.gte("session_date", since.isoformat())

    start, end = page_bounds(page, limit)
    result = query.order("session_date", desc=True).range(start, end).execute()

    rows = result.data or []
    total = result.count if result.count is not None else len(rows)

    return MoodHistoryResponse(
        mood_sessions=[MoodSessionResponse(**row) for row in rows],
        pagination=Pagination.build(page, limit, total),
    )


@router.get(
    "/analytics/summary",
    response_model=MoodAnalyticsResponse,
    summary="Mood analytics for the last N days",
)
async def get_mood_analytics(
    days: int = Query(30, ge=1, le=365),
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> MoodAnalyticsResponse:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()

    since = datetime.now(timezone.utc) - timedelta(days=days)
    result = (
        db.table("mood_sessions")
        .select("mood_type, confidence, recommended_study_hours, applied_to_plan, session_date")
        .eq("user_id", user["id"])
        .gte("session_date", since.isoformat())
        .order("session_date", desc=False)
        .execute()
    )

    return MoodAnalyticsResponse(**summarise_mood_sessions(result.data or []), days=days)


# ---------------------------------------------------------------------------
# Single session
# ---------------------------------------------------------------------------

@router.get("/{session_id}", response_model=MoodSessionResponse, summary="Get a mood session")
async def get_mood_session(
    session_id: str,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> MoodSessionResponse:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()
    return MoodSessionResponse(**_get_owned_mood_session(db, session_id, user["id"]))


@router.put("/{session_id}", response_model=MoodSessionResponse, summary="Update notes or plan flag")
async def update_mood_session(
    session_id: str,
    body: MoodSessionUpdate,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> MoodSessionResponse:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()
    session = _get_owned_mood_session(db, session_id, user["id"])

    update_data = body.model_dump(exclude_unset=True, exclude_none=True)
    if not update_data:
        return MoodSessionResponse(**session)

    update_data["updated_at"] = _now_iso()
    result = (
        db.table("mood_sessions")
        .update(update_data)
        .eq("id", session_id)
        .eq("user_id", user["id"])
        .execute()
    )
    updated = result.data[0] if result.data else {**session, **update_data}
    return MoodSessionResponse(**updated)


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a mood session",
)
async def delete_mood_session(
    session_id: str,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> None:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()
    _get_owned_mood_session(db, session_id, user["id"])

    # Study sessions planned from this mood keep existing, just unlinked
    (
        db.table("study_sessions")
        .update({"mood_session_id": None})
        .eq("mood_session_id", session_id)
        .eq("user_id", user["id"])
        .execute()
    )
    db.table("mood_sessions").delete().eq("id", session_id).eq("user_id", user["id"]).execute()
    logger.info("Deleted mood session %s for user %s", session_id, user["id"])


@router.post(
    "/{session_id}/apply-to-plan",
    response_model=ApplyToPlanResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Plan a study session from a mood analysis",
    description=(
        "Creates a planned study session whose duration is the mood session's "
        "recommended study hours, and marks the mood session as applied."
    ),
)
async def apply_mood_to_plan(
    session_id: str,
    body: ApplyToPlanRequest,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> ApplyToPlanResponse:
    user = get_authenticated_user(authorization)
    user_id: str = user["id"]
    db = get_supabase_client()
    mood_session = _get_owned_mood_session(db, session_id, user_id)

    study_row = {
        "user_id": user_id,
        "mood_session_id": session_id,
        "subject": body.subject,
        "planned_hours": float(mood_session["recommended_study_hours"]),
        "start_time": body.start_time.isoformat(),
        "status": "planned",
        "notes": body.notes or f"Study session based on {mood_session['mood_type']} mood",
        "topics": [],
    }
    study_result = db.table("study_sessions").insert(study_row).execute()

    if not study_result.data:
        logger.error("Failed to create study session from mood %s for user %s", session_id, user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Failed to save study session", "code": "db_error"},
        )

    update_data = {"applied_to_plan": True, "updated_at": _now_iso()}
    mood_result = (
        db.table("mood_sessions")
        .update(update_data)
        .eq("id", session_id)
        .eq("user_id", user_id)
        .execute()
    )
    updated_mood = mood_result.data[0] if mood_result.data else {**mood_session, **update_data}

    return ApplyToPlanResponse(
        study_session=StudySessionResponse(**study_result.data[0]),
        mood_session=MoodSessionResponse(**updated_mood),
    )

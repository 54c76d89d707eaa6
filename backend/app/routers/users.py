"""
User Profile Router
===================
GET /api/v1/users/me — Current user's profile
PUT /api/v1/users/me — Change display name and/or study preferences

Preferences are merged field by field: sending ``{"preferences":
{"language": "ar"}}`` keeps every other stored preference.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Header, HTTPException, status

from app.auth import get_authenticated_user
from app.db.supabase import get_supabase_client
from app.models.user import DEFAULT_PREFERENCES, UserProfile, UserProfileUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/users", tags=["users"])


def _to_profile(row: dict) -> UserProfile:
    preferences = {**DEFAULT_PREFERENCES, **(row.get("preferences") or {})}
    return UserProfile(**{**row, "preferences": preferences})


@router.get("/me", response_model=UserProfile, summary="Get the current user's profile")
async def get_me(
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> UserProfile:
    return _to_profile(get_authenticated_user(authorization))


@router.put(
    "/me",
    response_model=UserProfile,
    summary="Update the current user's profile",
    responses={422: {"description": "Name not 2-100 characters, or invalid preference values"}},
)
async def update_me(
    body: UserProfileUpdate,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> UserProfile:
    user = get_authenticated_user(authorization)

    update_data: dict = {}
    if body.name is not None:
        update_data["name"] = body.name.strip()
    if body.preferences is not None:
        update_data["preferences"] = {
            **DEFAULT_PREFERENCES,
            **(user.get("preferences") or {}),
            **body.preferences.model_dump(exclude_none=True),
        }

    if not update_data:
        return _to_profile(user)

    update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

    db = get_supabase_client()
    result = db.table("users").update(update_data).eq("id", user["id"]).execute()

    if not result.data:
        logger.error("Failed to update profile for user %s", user["id"])
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Failed to update profile", "code": "db_error"},
        )

    logger.info("Updated profile for user %s (%s)", user["id"], ", ".join(sorted(update_data)))
    return _to_profile(result.data[0])

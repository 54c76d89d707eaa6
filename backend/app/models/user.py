"""
User Profile Schemas
====================
The profile is created by Supabase Auth sign-up; the API only reads it
and lets the user change their display name and study preferences.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_PREFERENCES = {
    "language": "en",
    "timezone": "UTC",
    "daily_available_minutes": 480,
    "notifications": True,
}


class UserPreferences(BaseModel):
    language: str = Field(default="en", max_length=10)
    timezone: str = Field(default="UTC", max_length=64)
    daily_available_minutes: int = Field(default=480, ge=0, le=1440)
    notifications: bool = True


class UserPreferencesUpdate(BaseModel):
    """Partial preferences. Only the fields sent are merged."""

    language: Optional[str] = Field(default=None, max_length=10)
    timezone: Optional[str] = Field(default=None, max_length=64)
    daily_available_minutes: Optional[int] = Field(default=None, ge=0, le=1440)
    notifications: Optional[bool] = None


class UserProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    preferences: Optional[UserPreferencesUpdate] = None


class UserProfile(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

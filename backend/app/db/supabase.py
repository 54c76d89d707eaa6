"""
Supabase Client
===============
Provides a configured Supabase client shared by the routers and the
auth helper.

Uses the service_role key because the backend writes mood, study and
chat rows on behalf of the authenticated user. Every query is still
filtered by ``user_id`` in the routers so one user can never read or
modify another user's records.
"""

from functools import lru_cache

from supabase import Client, create_client

from app.config import get_settings


@lru_cache
def get_supabase_client() -> Client:
    settings = get_settings()
    return create_client(settings.supabase_url, settings.supabase_service_key)

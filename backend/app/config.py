"""
Giyas Configuration
===================
All environment variables in one place. Pydantic Settings validates
types at startup so a missing or malformed value fails on boot rather
than on the first request that needs it.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Loaded from environment variables or a .env file."""

    # --- Supabase ---
    supabase_url: str = "http://localhost:54321"
    supabase_service_key: str = ""  # service_role key for backend operations

    # --- Gemini / Generative Language API ---
    gemini_api_key: str = ""
    gemini_model: str = "gemini-pro"
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    # Upper bound on a single completion. Past this the caller gives up
    # and serves the local fallback instead.
    ai_timeout_seconds: float = 15.0

    # --- App settings ---
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # --- Pagination ---
    default_page_size: int = 20
    max_page_size: int = 100

    # --- Feature flags ---
    # Kill switch: if False, skip the Gemini API entirely and answer from the
    # local keyword classifier / templated responder.
    enable_ai_analysis: bool = True

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()

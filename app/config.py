"""
Application configuration loaded from environment variables.
Uses pydantic-settings for typed, validated config.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """All environment variables required by the application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Supabase ──────────────────────────────────────────────
    supabase_url: str
    supabase_service_role_key: str   # service role key (bypasses RLS)
    supabase_jwt_secret: str

    # ── Resume processing ─────────────────────────────────────
    resume_api_base_url: str = "http://localhost:8000"
    resume_bucket: str = "resumes"
    resume_max_bytes: int = 10 * 1024 * 1024
    resume_signed_url_ttl: int = 31536000  # 1 year, the parser fetches it later

    # ── Job queue ─────────────────────────────────────────────
    queue_batch_size: int = 20
    refresh_batch_size: int = 50
    history_limit: int = 100
    queue_registry_max_users: int = 1000  # decks held in memory, least recently used dropped

    # ── Scheduler ─────────────────────────────────────────────
    expiry_sweep_hour: int = 3
    expiry_sweep_timezone: str = "UTC"

    # ── App ───────────────────────────────────────────────────
    app_name: str = "jobswipe-backend"
    debug: bool = False


# Singleton: import this wherever config is needed
settings = Settings()  # type: ignore[call-arg]

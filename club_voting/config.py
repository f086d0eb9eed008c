"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration.

    Values are read from environment variables (or a `.env` file).
    """

    # Supabase
    supabase_url: str
    supabase_anon_key: str
    supabase_service_key: str
    supabase_http_max_connections: int = 100
    supabase_http_max_keepalive_connections: int = 50
    supabase_postgrest_timeout_seconds: int = 30

    # App
    app_name: str = "Club Voting API"
    app_version: str = "1.0.0"
    log_level: str = "INFO"
    allowed_origins: str = "http://localhost:3000"

    # Storage: "supabase" or "memory"
    storage_backend: str = "supabase"

    # Voting rules
    voting_save_max_retries: int = 3
    allow_testing_mode: bool = True
    late_edit_max_past_days: int = 365
    media_catalog_enabled: bool = True
    user_lookup_enabled: bool = True

    # Performance tuning
    auth_token_cache_ttl_seconds: int = 15
    auth_token_cache_max_entries: int = 1024
    slow_request_log_threshold_ms: int = 0
    membership_cache_ttl_seconds: int = 20
    user_cache_ttl_seconds: int = 30
    data_cache_max_entries: int = 5000

    @property
    def uses_memory_backend(self) -> bool:
        """Return True when state lives in process memory instead of Supabase."""
        return self.storage_backend.strip().lower() == "memory"

    @property
    def origins_list(self) -> list[str]:
        """Parse comma-separated ALLOWED_ORIGINS into a list."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()  # type: ignore[call-arg]

"""
Clinic Dashboard Configuration

All environment variables and settings for the clinic operations dashboard API.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ==========================================================================
    # APP
    # ==========================================================================
    app_name: str = "Clinic Dashboard"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    dashboard_timezone: str = "UTC"  # calendar days for stats/weekly buckets

    # ==========================================================================
    # SUPABASE (login, configs, messages, tickets)
    # ==========================================================================
    supabase_url: str
    supabase_service_key: str

    # ==========================================================================
    # SESSION
    # ==========================================================================
    session_secret: str
    session_ttl_seconds: int = 12 * 3600

    # ==========================================================================
    # RETELL (calling / voice-agent API)
    # ==========================================================================
    retell_base_url: str = "https://api.retellai.com"
    retell_page_limit: int = 1000  # API maximum per list-calls request
    retell_max_retries: int = 3
    retell_default_retry_after: int = 5  # seconds, when no Retry-After header
    retell_max_backoff_seconds: int = 60
    retell_jitter_seconds: float = 2.0
    retell_request_timeout: float = 30.0

    # ==========================================================================
    # GHL (calendar / CRM API)
    # ==========================================================================
    ghl_base_url: str = "https://rest.gohighlevel.com/v1"
    ghl_request_timeout: float = 15.0

    # ==========================================================================
    # SUPPORT TICKETS
    # ==========================================================================
    ticket_webhook_url: str | None = None

    # ==========================================================================
    # CORS
    # ==========================================================================
    cors_origins: str = "http://localhost:3000"

    # ==========================================================================
    # SERVER
    # ==========================================================================
    host: str = "0.0.0.0"
    port: int = 8000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()

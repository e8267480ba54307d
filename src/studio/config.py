"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", frozen=True
    )

    # System Configuration
    environment: Literal["development", "production", "test"] = "development"
    api_prefix: str = "/api"
    cors_origins: str = "http://localhost:3000"
    log_level: str = "INFO"

    # Cloudflare Access Configuration
    cf_access_aud: str | None = None
    cf_access_jwt_alg: str | None = None
    cf_access_certs_url: str | None = None
    cf_access_team_domain: str | None = None
    cf_access_login_url: str | None = None
    cf_access_issuer: str | None = None
    jwks_cache_ttl_seconds: int = 3600  # 1 hour
    jwt_leeway_seconds: int = 10  # Clock skew tolerance

    # Session Configuration
    session_secret: str = ""
    dev_auth_bypass_token: str | None = None
    dev_auth_bypass_session: bool = False

    # Provider Configuration
    google_gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash-lite-preview-02-05"
    google_tts_api_key: str = ""
    deepai_api_key: str = ""
    provider_timeout_seconds: float = 60.0

    # Persistence Configuration
    storage_backend: Literal["memory", "supabase"] = "memory"
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    media_bucket: str = "media"

    # Cache Configuration
    cache_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    script_cache_ttl_seconds: int = 60 * 60 * 6  # 6 hours
    script_single_flight: bool = True

    # PostHog Configuration
    posthog_api_key: str | None = None
    posthog_host: str = "https://app.posthog.com"

    @property
    def is_dev(self) -> bool:
        """Everything except production counts as a development runtime."""
        return self.environment != "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load settings once per process.

    Returns:
        The process-wide Settings instance
    """
    return Settings()

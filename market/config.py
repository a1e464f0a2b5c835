"""
Configuration management using Pydantic Settings.
Challenge: One place for remote endpoint, identity provider and paging settings.
Design: Single source of truth for all environment variables.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from environment. Validates at startup."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "Content Marketplace Client"
    debug: bool = False
    log_level: str = "INFO"

    # Remote ledger service (RPC over HTTP)
    remote_service_url: str = "http://127.0.0.1:4943/rpc"
    # Transport timeout lives on the HTTP client; the core itself never times out
    remote_timeout_seconds: float = 30.0

    # Local identity provider (replica/dev mode). Unset -> login is a provider error.
    identity_provider_identity: Optional[str] = None

    # Pagination for the presentation bridge
    default_page_size: int = 20
    max_page_size: int = 100


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance. Avoids re-reading env on every request."""
    return Settings()

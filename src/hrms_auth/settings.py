"""
hrms_auth.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for the client core.
- Keep input rules (password length, 2FA code length) in one place.
- Offer a cached settings instance for composition roots.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Enterprise pattern:
    - Strict env-driven configuration
    - Defaults safe for local dev
    - Single settings object injected across layers
    """

    model_config = SettingsConfigDict(env_prefix="HRMS_AUTH_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "hrms-auth"
    log_level: str = "INFO"

    # Backend auth API (the HTTP server is an external collaborator).
    api_base_url: str = "http://localhost:5000/api"
    http_timeout_seconds: float = Field(default=10.0, gt=0)

    # Durable local storage for the persisted session.
    storage_url: str = "sqlite+aiosqlite:///./hrms_auth.db"

    # Client-side validation rules (checked before any network call).
    min_password_length: int = Field(default=6, ge=1)
    two_factor_code_length: int = Field(default=6, ge=4, le=10)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for every flow constructed by the host app.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Flows receive the Settings object through their constructor; nothing reads env vars directly.

"""
Configuration and settings for the practice tracker backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3001)
    environment: str = Field(default="development")
    frontend_url: str = Field(default="http://localhost:3000")
    log_level: str = Field(default="INFO")

    # External identities used by the live endpoint
    github_username: Optional[str] = Field(default=None)
    leetcode_username: Optional[str] = Field(default=None)

    # Optional bearer token for the contribution API
    github_token: Optional[str] = Field(default=None)

    # Upstream calls
    upstream_timeout_seconds: float = Field(default=10.0, gt=0)

    # Practice store (hosted REST endpoint or a SQLAlchemy URL)
    supabase_url: Optional[str] = Field(default=None)
    supabase_key: Optional[str] = Field(default=None)
    database_url: Optional[str] = Field(default=None)
    store_page_size: int = Field(default=1000, ge=1)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()

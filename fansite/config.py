"""
Configuration and settings for the fansite backend.
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

    # Relational backend (Postgres expected)
    database_url: Optional[str] = Field(default=None)

    # Document backend (Firestore). Either a service-account file or the
    # individual credential fields.
    firebase_credentials_file: Optional[str] = Field(default=None)
    firebase_project_id: Optional[str] = Field(default=None)
    firebase_client_email: Optional[str] = Field(default=None)
    firebase_private_key: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)
    seed_sample_downloads: bool = Field(default=False)

    # Admin access
    admin_token: str = Field(default="admin-token")
    default_admin_username: str = Field(default="admin")
    default_admin_password: str = Field(default="admin123")

    youtube_channel_id: Optional[str] = Field(default=None)

    log_level: str = Field(default="INFO")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000)

    @property
    def has_firebase_credentials(self) -> bool:
        if self.firebase_credentials_file:
            return True
        return bool(
            self.firebase_project_id
            and self.firebase_client_email
            and self.firebase_private_key
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()

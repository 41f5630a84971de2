"""
Configuration and settings for the Huddle API.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")

    # Key-value store backend
    kv_backend: Literal["memory", "sql", "redis"] = Field(
        default="memory", validation_alias="HUDDLE_KV_BACKEND"
    )
    database_url: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")
    redis_url: Optional[str] = Field(default=None, validation_alias="REDIS_URL")
    redis_key_prefix: str = Field(
        default="huddle:", validation_alias="HUDDLE_REDIS_KEY_PREFIX"
    )

    # Auth
    jwt_secret: str = Field(
        default="huddle-dev-secret-change-me", validation_alias="HUDDLE_JWT_SECRET"
    )
    jwt_algorithm: str = Field(default="HS256")
    jwt_expiry_hours: int = Field(default=168, validation_alias="HUDDLE_JWT_EXPIRY_HOURS")

    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"], validation_alias="HUDDLE_CORS_ORIGINS"
    )
    log_level: str = Field(default="INFO", validation_alias="HUDDLE_LOG_LEVEL")

    # S3-compatible storage for profile photos and team logos
    cos_endpoint: Optional[str] = Field(default=None, validation_alias="COS_ENDPOINT")
    cos_region: Optional[str] = Field(default=None, validation_alias="COS_REGION")
    cos_bucket: Optional[str] = Field(default=None, validation_alias="COS_BUCKET")
    aws_access_key_id: Optional[str] = Field(
        default=None, validation_alias="AWS_ACCESS_KEY_ID"
    )
    aws_secret_access_key: Optional[str] = Field(
        default=None, validation_alias="AWS_SECRET_ACCESS_KEY"
    )
    public_storage_base_url: Optional[str] = Field(
        default=None, validation_alias="HUDDLE_PUBLIC_STORAGE_BASE_URL"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()

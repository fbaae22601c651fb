"""
Configuration and settings for the FitByte backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/v1")

    # Database (Postgres expected)
    database_url: Optional[str] = Field(default=None)

    # Auth
    jwt_secret: Optional[str] = Field(default=None)
    jwt_expires_in_seconds: int = Field(default=7 * 24 * 3600, ge=60)

    # S3 object storage
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)
    aws_region: Optional[str] = Field(default=None)
    aws_s3_bucket: Optional[str] = Field(default=None)
    aws_s3_endpoint: Optional[str] = Field(default=None)
    max_upload_bytes: int = Field(default=100 * 1024, ge=1)

    # Registration email cache (Redis)
    redis_url: Optional[str] = Field(default=None)
    redis_email_cache_key: str = Field(default="fitbyte:emails")
    email_cache_size: int = Field(default=10_000, ge=1)

    # Server
    bind_address: str = Field(default="127.0.0.1:8080")
    log_level: str = Field(default="INFO")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="FITBYTE_USE_IN_MEMORY_BACKENDS"
    )

    @field_validator("database_url")
    @classmethod
    def _normalize_database_url(cls, value: Optional[str]) -> Optional[str]:
        # Heroku-style URLs use a scheme SQLAlchemy no longer accepts.
        if value and value.startswith("postgres://"):
            return "postgresql://" + value[len("postgres://"):]
        return value or None

    @property
    def bind_host_port(self) -> tuple[str, int]:
        host, _, port = self.bind_address.rpartition(":")
        return host or "127.0.0.1", int(port)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()

"""
Configuration and settings for the CMS backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

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
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Firebase (Firestore + Storage)
    firebase_project_id: Optional[str] = Field(
        default=None, alias="FIREBASE_PROJECT_ID"
    )
    firebase_credentials_path: Optional[str] = Field(
        default=None, alias="GOOGLE_APPLICATION_CREDENTIALS"
    )
    firebase_storage_bucket: Optional[str] = Field(
        default=None, alias="FIREBASE_STORAGE_BUCKET"
    )

    # S3-compatible storage, used when no Firebase bucket is configured
    s3_endpoint: Optional[str] = Field(default=None, alias="S3_ENDPOINT")
    s3_region: Optional[str] = Field(default=None, alias="S3_REGION")
    s3_bucket: Optional[str] = Field(default=None, alias="S3_BUCKET")
    s3_public_base_url: Optional[str] = Field(
        default=None, alias="S3_PUBLIC_BASE_URL"
    )
    aws_access_key_id: Optional[str] = Field(
        default=None, alias="AWS_ACCESS_KEY_ID"
    )
    aws_secret_access_key: Optional[str] = Field(
        default=None, alias="AWS_SECRET_ACCESS_KEY"
    )

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, alias="CMS_USE_IN_MEMORY_BACKENDS"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()

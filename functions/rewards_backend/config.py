"""
Configuration and settings for the rewards backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080)
    log_level: str = Field(default="INFO")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Database (any SQLAlchemy URL; Postgres in production)
    database_url: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Deployment-level secret for the emergency admin-secret reset
    admin_reset_secret: Optional[str] = Field(default=None)

    # "global": one catalog and one config; "owner": partitioned by openid
    scope_mode: Literal["global", "owner"] = Field(default="global")
    goods_order: Literal["created_asc", "updated_desc"] = Field(
        default="created_asc"
    )

    # Image uploads
    upload_mode: Literal["inline", "disk", "cos"] = Field(default="inline")
    upload_dir: str = Field(default="uploads")
    upload_url_prefix: str = Field(default="/uploads")
    max_upload_bytes: int = Field(default=5 * 1024 * 1024)

    # S3-compatible storage (Tencent COS) for upload_mode="cos"
    cos_endpoint: Optional[str] = Field(default=None)
    cos_region: Optional[str] = Field(default=None)
    cos_bucket: Optional[str] = Field(default=None)
    cos_public_base_url: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()

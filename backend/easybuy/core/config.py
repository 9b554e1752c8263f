"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables and .env file.
"""

from __future__ import annotations

import json
from functools import lru_cache
from typing import List, Optional, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_list(v):
    """Accept a JSON list or a comma-separated string."""
    if isinstance(v, str):
        if v.startswith("["):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        return [i.strip() for i in v.split(",") if i.strip()]
    return v


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    PROJECT_NAME: str = "EasyBuy"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    API_V1_PREFIX: str = "/api/v1"
    PORT: int = 8000

    # CORS - the SPA is served from another origin, so open by default
    BACKEND_CORS_ORIGINS: Union[List[str], str] = ["*"]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):
        """Convert comma-separated string to list, or return list as-is."""
        return _split_list(v)

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./easybuy.db"
    DB_AUTO_CREATE: bool = True
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def convert_database_url(cls, v: str) -> str:
        """Convert a plain postgresql:// URL to the asyncpg dialect.

        Hosting providers hand out DATABASE_URL with the postgresql://
        prefix, but the async engine needs postgresql+asyncpg://.
        """
        if v and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        if v and v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql+asyncpg://", 1)
        return v

    # Uploads
    UPLOAD_DIR: str = "uploads"
    UPLOAD_URL_PREFIX: str = "uploads"
    UPLOAD_MAX_BYTES: int = 10 * 1024 * 1024
    UPLOAD_ALLOWED_EXTENSIONS: Union[List[str], str] = [
        "jpg",
        "jpeg",
        "png",
        "gif",
        "webp",
        "pdf",
    ]

    @field_validator("UPLOAD_ALLOWED_EXTENSIONS", mode="before")
    @classmethod
    def assemble_extensions(cls, v):
        return [ext.lower().lstrip(".") for ext in _split_list(v)]

    # Orders
    ENFORCE_STATUS_TRANSITIONS: bool = True
    SHIPPING_THRESHOLD_PERCENT: int = 60

    # Bootstrap admin account, seeded at startup when both are set
    ADMIN_EMAIL: Optional[str] = None
    ADMIN_PASSWORD: Optional[str] = None
    ADMIN_USERNAME: str = "Administrator"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()

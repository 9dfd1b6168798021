"""
Dojo configuration: all environment variables in one place.

Read from environment at runtime. Never hardcode secrets.
"""

from __future__ import annotations

import os


class Settings:
    """Application settings from environment variables."""

    # Database
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "")

    # S3-compatible object storage for kata images
    STORAGE_ENDPOINT: str = os.environ.get("STORAGE_ENDPOINT", "")
    STORAGE_ACCESS_KEY: str = os.environ.get("STORAGE_ACCESS_KEY", "")
    STORAGE_SECRET_KEY: str = os.environ.get("STORAGE_SECRET_KEY", "")
    STORAGE_BUCKET: str = os.environ.get("STORAGE_BUCKET", "kata_images")
    STORAGE_MAX_RETRIES: int = int(os.environ.get("STORAGE_MAX_RETRIES", "1"))

    # Auth
    AUTH_URL: str = os.environ.get("AUTH_URL", "")
    AUTH_API_KEY: str = os.environ.get("AUTH_API_KEY", "")
    JWT_SECRET: str = os.environ.get("JWT_SECRET", "")
    JWT_ALGORITHM: str = os.environ.get("JWT_ALGORITHM", "HS256")
    JWT_AUDIENCE: str = os.environ.get("JWT_AUDIENCE", "authenticated")

    # Device media
    MEDIA_GALLERY_DIR: str = os.environ.get("MEDIA_GALLERY_DIR", "")
    MEDIA_CAMERA_DIR: str = os.environ.get("MEDIA_CAMERA_DIR", "")

    # Application
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")

    @property
    def STORAGE_PUBLIC_URL(self) -> str:
        url = os.environ.get("STORAGE_PUBLIC_URL")
        if url:
            return url.rstrip("/")
        return f"{self.STORAGE_ENDPOINT.rstrip('/')}/{self.STORAGE_BUCKET}"


# Singleton instance
settings = Settings()

# Validate required settings (skip in test mode)
_testing = os.environ.get("TESTING", "").lower() == "true"

if not _testing:
    if not settings.DATABASE_URL:
        raise RuntimeError("DATABASE_URL environment variable is required")
    if not settings.JWT_SECRET:
        raise RuntimeError("JWT_SECRET environment variable is required")
    if not settings.STORAGE_ENDPOINT:
        raise RuntimeError("STORAGE_ENDPOINT environment variable is required")
    if not settings.STORAGE_ACCESS_KEY:
        raise RuntimeError("STORAGE_ACCESS_KEY environment variable is required")
    if not settings.STORAGE_SECRET_KEY:
        raise RuntimeError("STORAGE_SECRET_KEY environment variable is required")
    if not settings.AUTH_URL:
        raise RuntimeError("AUTH_URL environment variable is required")

"""
Configuration management for the portfolio backend.
Uses Pydantic Settings for environment variable management.
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    API_TITLE: str = "Portfolio API"
    API_VERSION: str = "0.1.0"
    API_DESCRIPTION: str = "Content backend for the portfolio site: blog, photography and contact messages"

    # Public site origin, used to build share links for posts and photos
    SITE_URL: str = "http://localhost:5173"

    # CORS Configuration
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]

    # Database Configuration
    # Empty means a local SQLite file is used instead of PostgreSQL
    DATABASE_URL: str = ""

    # Every store call is bounded by this timeout (seconds)
    REQUEST_TIMEOUT_SECONDS: float = 10.0

    # Cloudinary Configuration (object storage for photo uploads)
    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""
    PHOTO_FOLDER: str = "photos"
    MAX_UPLOAD_MB: int = 10

    # Operator credentials
    # ADMIN_PASSWORD_HASH should be a bcrypt hash
    ADMIN_EMAIL: str = ""
    ADMIN_PASSWORD_HASH: str = ""

    # JWT Configuration
    # SECRET_KEY should be a long random string (e.g., generated with: openssl rand -hex 32)
    JWT_SECRET_KEY: str = "change-this-secret-in-production-use-openssl-rand-hex-32"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings


# Global settings instance
settings = Settings()

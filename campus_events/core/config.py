"""
Configuration settings for the application
"""

import os
from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings"""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./campus_events.db")

    # Security
    JWT_SECRET: str = os.getenv("JWT_SECRET", "change-me-in-production")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_TTL_MINUTES: int = 60 * 12
    BCRYPT_ROUNDS: int = 12

    # Mail
    MAIL_BACKEND: str = os.getenv("MAIL_BACKEND", "console")  # smtp, console, memory
    MAIL_HOST: str = os.getenv("MAIL_HOST", "smtp.gmail.com")
    MAIL_PORT: int = 587
    MAIL_USERNAME: str | None = os.getenv("MAIL_USERNAME")
    MAIL_PASSWORD: str | None = os.getenv("MAIL_PASSWORD")
    MAIL_USE_TLS: bool = True
    MAIL_FROM: str = os.getenv("MAIL_FROM", "events@campus.local")
    MAIL_TIMEOUT_SECONDS: float = 20.0

    # Application
    BASE_URL: str = os.getenv("BASE_URL", "http://localhost:8000")
    CAMPUS_TIMEZONE: str = os.getenv("CAMPUS_TIMEZONE", "Asia/Kolkata")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    REQUEST_TIMEOUT_SECONDS: float = 30.0

    # CORS
    ALLOW_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8000",
    ]

    # File uploads
    UPLOAD_ROOT: str = os.getenv("UPLOAD_ROOT", "uploads")
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10MB

    # Rate limiting
    RATE_LIMIT_PER_MINUTE: int = 30

    # Admin bootstrap
    BOOTSTRAP_EVENT_ADMIN_EMAIL: str = "event.admin@campus.local"
    BOOTSTRAP_ACADEMIC_ADMIN_EMAIL: str = "academic.admin@campus.local"
    BOOTSTRAP_ADMIN_PASSWORD: str | None = os.getenv("BOOTSTRAP_ADMIN_PASSWORD")

    class Config:
        env_file = ".env"

settings = Settings()

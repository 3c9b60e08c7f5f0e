"""
Application Settings for Hatch

Centralized configuration using Pydantic Settings with .env support.
All environment variables are validated at startup.
"""

from functools import lru_cache
from typing import Optional
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Supabase provides auth (JWT), Postgres and storage. DATABASE_URL may be
    given directly; otherwise it is derived from SUPABASE_URL + SUPABASE_PASSWORD.
    """

    # Supabase Configuration
    supabase_url: str
    supabase_anon_key: Optional[str] = None
    supabase_service_role_key: str
    supabase_jwt_secret: Optional[str] = None

    # Application Settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # CORS Configuration
    frontend_url: str = "http://localhost:3000"
    allowed_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Admin access
    # ADMIN_API_KEY protects scheduler endpoints (cron callers).
    # ADMIN_EMAILS only seeds role=admin when a profile is first created.
    admin_api_key: Optional[str] = None
    admin_emails: list[str] = []

    # Payment review
    payment_retention_days: int = 3
    payment_screenshot_bucket: str = "payment-screenshots"
    max_screenshot_bytes: int = 5 * 1024 * 1024

    # Subscription / attendance jobs
    expiring_soon_days: int = 7
    auto_attendance_grace_minutes: int = 0

    # Database Configuration (SQLModel/SQLAlchemy)
    supabase_password: Optional[str] = None
    database_url: Optional[str] = None
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_pool_timeout: int = 30
    database_echo: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("admin_emails")
    @classmethod
    def normalize_admin_emails(cls, v: list[str]) -> list[str]:
        return [email.strip().lower() for email in v if email.strip()]

    @model_validator(mode="after")
    def validate_retention(self) -> "Settings":
        """Reject retention windows that would purge fresh submissions."""
        if self.payment_retention_days < 1:
            raise ValueError("PAYMENT_RETENTION_DAYS must be at least 1")
        if self.expiring_soon_days < 1:
            raise ValueError("EXPIRING_SOON_DAYS must be at least 1")
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export for direct import
settings = get_settings()

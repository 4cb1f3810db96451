"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # PostgreSQL
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "samrambhak"
    postgres_password: str = "password"
    postgres_db: str = "samrambhak"
    # Full URL override (tests point this at SQLite)
    database_url: Optional[str] = None

    # MongoDB (admin activity log)
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "samrambhak_logs"

    # Sessions
    session_lifetime_days: int = 30

    # Email verification links
    email_token_secret: str = "change-this-secret"
    email_token_algorithm: str = "HS256"
    email_token_expire_hours: int = 48

    # Resend email provider
    resend_api_key: str = ""
    resend_api_url: str = "https://api.resend.com/emails"
    email_from: str = "Samrambhak <onboarding@resend.dev>"
    public_app_url: str = "http://localhost:5173"

    # Media storage
    media_root: str = "media"
    media_url: str = "/media"
    max_upload_size_mb: int = 5

    # App
    log_level: str = "INFO"
    debug: bool = False

    @property
    def postgres_url(self) -> str:
        """Construct the SQLAlchemy connection URL"""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def email_enabled(self) -> bool:
        return bool(self.resend_api_key)

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()

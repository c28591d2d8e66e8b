"""Application settings using Pydantic Settings for configuration management."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Application
    app_name: str = "QuMail API"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Session tokens
    jwt_secret: SecretStr = Field(default=SecretStr("change-me-in-production"))
    jwt_algorithm: str = "HS256"
    jwt_expiry_minutes: int = 60 * 24

    # Google / Gmail API
    google_client_id: str | None = None
    google_client_secret: SecretStr | None = None
    google_token_url: str = "https://oauth2.googleapis.com/token"
    google_userinfo_url: str = "https://www.googleapis.com/oauth2/v1/userinfo"
    gmail_api_base_url: str = "https://gmail.googleapis.com/gmail/v1/users/me"
    gmail_timeout_seconds: float = 30.0
    gmail_fanout_concurrency: int = 10
    token_refresh_skew_seconds: int = 60

    # Inbox
    default_inbox_query: str = "in:inbox"
    default_inbox_limit: int = 20
    max_inbox_limit: int = 100
    fallback_on_empty: bool = True

    # IMAP / SMTP
    imap_default_host: str = "imap.gmail.com"
    imap_default_port: int = 993
    imap_timeout_seconds: float = 30.0
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_timeout_seconds: float = 30.0

    # User store
    sqlite_db_path: str = "./data/qumail.db"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

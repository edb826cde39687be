"""Application configuration via pydantic-settings.

All secrets are loaded from environment variables (.env file).
Settings are organized into logical groups and composed into a single Settings object.
Fields without a default are required: the process refuses to start without them.
"""

from __future__ import annotations

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """PostgreSQL and Redis connection settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = Field(description="Async PostgreSQL connection string (postgresql+asyncpg://...)")
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection string (duplicate-delivery guard)",
    )

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Only the asyncpg driver is supported."""
        if not v.startswith("postgresql+asyncpg://"):
            scheme = v.split("://", 1)[0]
            msg = f"DATABASE_URL must use postgresql+asyncpg://, got {scheme}://"
            raise ValueError(msg)
        return v


class WhatsAppSettings(BaseSettings):
    """WhatsApp Cloud API configuration."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    whatsapp_verify_token: str = Field(
        validation_alias=AliasChoices("WHATSAPP_VERIFY_TOKEN", "MYTOKEN"),
        description="Webhook verification token",
    )
    whatsapp_access_token: str = Field(
        validation_alias=AliasChoices("WHATSAPP_ACCESS_TOKEN", "TOKEN"),
        description="Graph API access token",
    )
    whatsapp_api_url: str = Field(
        default="https://graph.facebook.com/v22.0",
        description="Graph API base URL (phone number id is appended per message)",
    )
    whatsapp_app_secret: str = Field(
        default="",
        description="App secret for X-Hub-Signature-256 checks (empty = skip)",
    )
    list_page_size: int = Field(default=10, ge=1, le=10, description="Rows per interactive list message")


class MailSettings(BaseSettings):
    """SMTP credentials and completion-notification recipients."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    smtp_host: str = Field(default="smtp.gmail.com")
    smtp_port: int = Field(default=587)
    email_user: str = Field(description="SMTP login, also used as the From address")
    email_pass: str = Field(description="SMTP password (Gmail app password)")
    notify_emails: str = Field(
        default="",
        description="Comma-separated list of summary recipients",
    )

    @property
    def recipients(self) -> list[str]:
        """Parse comma-separated recipients, dropping blanks."""
        return [addr.strip() for addr in self.notify_emails.split(",") if addr.strip()]


class Settings(BaseSettings):
    """Root settings composing all sub-settings.

    Usage:
        settings = Settings()
        settings.db.database_url
        settings.whatsapp.whatsapp_verify_token
        settings.mail.recipients
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")
    port: int = Field(default=3000, description="HTTP listen port")
    dedup_ttl_seconds: int = Field(default=86400, description="How long a delivered message id is remembered")

    # Composed settings (loaded from same .env)
    db: DatabaseSettings = Field(default_factory=DatabaseSettings)
    whatsapp: WhatsAppSettings = Field(default_factory=WhatsAppSettings)
    mail: MailSettings = Field(default_factory=MailSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid:
            msg = f"Invalid log level: {v}. Must be one of {valid}"
            raise ValueError(msg)
        return upper

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


# Module-level singleton, import this wherever settings are needed.
settings = Settings()

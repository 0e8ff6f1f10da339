from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Leave Tracker"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    database_url: str = "postgresql+asyncpg://leave:leave@db:5432/leave"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:8000"]
    log_level: str = "INFO"

    # Database pool; every held advisory lock pins one connection
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # Slack
    env_name: str = "DEV"
    slack_bot_key: str = ""
    slack_channel_id: str = ""
    slack_api_url: str = "https://slack.com/api/chat.postMessage"

    # Identity provider
    identity_api_url: str = "http://localhost:4000/v6"
    identity_api_token: str = ""
    identity_timeout_seconds: float = 10.0

    # Event bus (e-mail)
    bus_api_url: str = "http://localhost:4000/eventBus"
    bus_api_token: str = ""
    bus_originator: str = "leave-api"

    # Monthly reminder
    leave_reminder_template_id: str | None = None
    leave_reminder_month_offset: int = 1
    leave_reminder_role: str = "Topcoder Staff"

    # Scheduled jobs
    daily_summary_lock_namespace: str = "leave:daily-slack-summary"
    monthly_reminder_lock_namespace: str = "leave:monthly-reminder"
    lock_connect_timeout_seconds: float = Field(default=2.0, gt=0)
    worker_run_hour_utc: int = Field(default=0, ge=0, le=23)


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings

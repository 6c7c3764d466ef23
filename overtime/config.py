from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "BRUSS Overtime"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    database_url: str = "postgresql+asyncpg://overtime:overtime@db:5432/overtime"
    create_schema: bool = False
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Global monthly payout-approval ceiling (hours) for leaders and managers
    # without a per-supervisor override. Zero disables quota-path approvals.
    supervisor_monthly_limit: float = 0
    timezone: str = "Europe/Warsaw"

    base_url: str = "http://localhost:3000"
    mail_from: str = "no.reply@bruss-group.com"


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings

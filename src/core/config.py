from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Ignore unrelated env keys so local/dev .env can include frontend-only values.
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "88XP Scoreboard Backend"
    environment: str = "development"
    api_prefix: str = "/api/v1"
    cors_allow_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    supabase_url: Optional[str] = Field(default=None, alias="SUPABASE_URL")
    supabase_service_role_key: Optional[str] = Field(
        default=None, alias="SUPABASE_SERVICE_ROLE_KEY"
    )
    supabase_anon_key: Optional[str] = Field(default=None, alias="SUPABASE_ANON_KEY")

    data_backend: str = Field(
        default="supabase", alias="SCOREBOARD_DATA_BACKEND", pattern="^(supabase|memory)$"
    )
    fixture_path: Optional[str] = Field(default=None, alias="SCOREBOARD_FIXTURE_PATH")
    scoreboard_timezone: str = Field(default="UTC", alias="SCOREBOARD_TIMEZONE")

    badge_epoch_year: int = Field(default=2026, alias="BADGE_EPOCH_YEAR")
    badge_lookback_years: int = Field(default=5, ge=1, alias="BADGE_LOOKBACK_YEARS")
    default_monthly_target: int = Field(default=100, ge=0, alias="DEFAULT_MONTHLY_TARGET")
    badge_fetch_workers: int = Field(default=4, ge=1, le=16, alias="BADGE_FETCH_WORKERS")
    badge_run_token: Optional[str] = Field(default=None, alias="BADGE_RUN_TOKEN")


@lru_cache
def get_settings() -> Settings:
    return Settings()


def get_cors_origins() -> list[str]:
    settings = get_settings()
    return [origin.strip() for origin in settings.cors_allow_origins.split(",") if origin.strip()]

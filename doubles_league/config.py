"""Environment driven settings via pydantic-settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .scheduling import MAX_DAY_SEARCH
from .slugs import DEFAULT_SLUG_ATTEMPTS


class Settings(BaseSettings):
    """Settings read from ``DOUBLES_LEAGUE_*`` environment variables."""

    model_config = SettingsConfigDict(env_prefix="DOUBLES_LEAGUE_", env_file=".env", extra="ignore")

    db_path: str = "doubles_league.db"

    # The two retry bounds are unrelated and tuned separately.
    max_day_search: int = Field(MAX_DAY_SEARCH, gt=0)
    slug_attempts: int = Field(DEFAULT_SLUG_ATTEMPTS, gt=0)

    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]

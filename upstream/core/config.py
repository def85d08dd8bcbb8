from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "UpStream"
    DATA_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parent.parent / "data")

    API_KEY: str = Field(default="", validation_alias=AliasChoices("API_KEY", "API_TOKEN"))
    API_TOKEN: str | None = None
    JWT_SECRET: str = "change-me"
    JWT_ACCESS_TTL_MIN: int = 15
    JWT_REFRESH_TTL_DAYS: int = 7
    ALLOWED_ORIGINS: list[str] = Field(default_factory=list)
    AUTH_ALLOW_API_KEY: bool = True

    DB_URL: str = Field(default="sqlite:///data/upstream.db", validation_alias=AliasChoices("DATABASE_URL", "DB_URL"))

    # strftime pattern behind the ``upstream`` date format
    DATE_FORMAT: str = "%B %d, %Y"
    DISABLE_MILESTONE_CATEGORIES: bool = False

    LOG_LEVEL: str = "INFO"

    @property
    def API_KEY_VALUE(self) -> str:
        return self.API_KEY or (self.API_TOKEN or "")

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, value: Any) -> list[str]:
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, Iterable):
            return [str(item).strip() for item in value if str(item).strip()]
        raise TypeError("ALLOWED_ORIGINS must be a comma separated string or list")

    @field_validator("DATE_FORMAT")
    @classmethod
    def require_date_format(cls, value: str) -> str:
        if "%" not in value:
            raise ValueError("DATE_FORMAT must be a strftime pattern")
        return value


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    settings = AppSettings()
    settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    settings.API_TOKEN = settings.API_KEY_VALUE
    return settings


settings = get_settings()

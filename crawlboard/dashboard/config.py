"""Environment-driven settings for the dashboard."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from . import DEFAULT_REFRESH_INTERVAL_MS, REFRESH_INTERVALS_MS


class DashboardSettings(BaseSettings):
    """Dashboard settings, read from ``CRAWLBOARD_*`` variables and ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="CRAWLBOARD_",
        env_file=(".env", ".env.local"),
        extra="ignore",
    )

    api_url: str = "http://localhost:8080/api"
    api_timeout: float = Field(default=10.0, gt=0)
    refresh_interval_ms: int = DEFAULT_REFRESH_INTERVAL_MS
    event_log_size: int = Field(default=1000, ge=1)
    log_level: str = "INFO"

    @field_validator("api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("refresh_interval_ms")
    @classmethod
    def _check_interval(cls, value: int) -> int:
        if value not in REFRESH_INTERVALS_MS:
            raise ValueError(
                f"refresh_interval_ms must be one of {list(REFRESH_INTERVALS_MS)}, got {value}"
            )
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return value.strip().upper()


@lru_cache(maxsize=1)
def get_settings() -> DashboardSettings:
    """Return cached settings."""
    return DashboardSettings()

from functools import lru_cache
from typing import List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    app_name: str = Field(default="Capacity Scheduler")
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    )
    store_base_url: AnyHttpUrl | None = Field(
        default=None
    )
    store_timeout: float = Field(
        default=10.0
    )
    store_token: str | None = Field(
        default=None
    )
    use_mock_data: bool = Field(
        default=True
    )
    cache_ttl_seconds: float = Field(
        default=300.0
    )
    default_capacity: int = Field(
        default=50
    )
    default_duration_minutes: int = Field(
        default=60
    )
    fallback_timezone: str | None = Field(
        default=None
    )
    enforce_status_transitions: bool = Field(
        default=False
    )
    log_level: str = Field(
        default="INFO"
    )

    model_config = SettingsConfigDict(env_prefix="SCHEDULER_", case_sensitive=False)

    @field_validator("cors_origins", mode="before")
    def _split_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("cache_ttl_seconds", "store_timeout")
    def _positive_seconds(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @field_validator("default_capacity", "default_duration_minutes")
    def _positive_int(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @field_validator("fallback_timezone")
    def _known_timezone(cls, value: str | None) -> str | None:
        if value is None:
            return value
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown IANA timezone: {value}") from exc
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()

from functools import lru_cache
from typing import List

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CHANNELS = ("venue-push", "client-push", "email")


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    app_name: str = Field(default="Salon Agenda Service")
    cors_origins: List[AnyHttpUrl] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
        ]
    )
    notification_service_base_url: AnyHttpUrl | None = Field(
        default=None
    )
    notification_service_timeout: float = Field(
        default=5.0
    )
    notification_service_token: str | None = Field(
        default=None
    )
    use_mock_notifications: bool = Field(
        default=True
    )
    confirmation_channels: List[str] = Field(
        default_factory=lambda: ["venue-push", "client-push"]
    )
    venue_timezone: str = Field(
        default="America/Sao_Paulo"
    )
    max_recurrence_occurrences: int = Field(
        default=52, ge=1, le=52
    )
    seed_demo_data: bool = Field(
        default=True
    )
    reminders_enabled: bool = Field(
        default=True
    )
    reminder_interval_minutes: int = Field(
        default=15, ge=1
    )

    model_config = SettingsConfigDict(env_prefix="AGENDA_", case_sensitive=False)

    @field_validator("cors_origins", "confirmation_channels", mode="before")
    def _split_csv(cls, value):
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("confirmation_channels")
    def _known_channels(cls, value: List[str]) -> List[str]:
        unknown = [channel for channel in value if channel not in CHANNELS]
        if unknown:
            raise ValueError(f"Unknown notification channels: {', '.join(unknown)}")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()

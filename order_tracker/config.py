"""Configuration management for the order tracker."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Redis Configuration
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis URL")

    # API Configuration
    api_port: int = Field(default=8000, description="API server port")
    api_host: str = Field(default="0.0.0.0", description="API server host")

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "text"] = Field(default="json", description="Log format")

    # Persistence
    optimistic_max_retries: int = Field(
        default=5, description="Attempts before a conflicting order write gives up"
    )
    optimistic_base_delay_ms: int = Field(default=20, description="Initial retry delay")
    optimistic_max_delay_ms: int = Field(default=500, description="Retry delay ceiling")
    optimistic_jitter_ms: int = Field(default=20, description="Random jitter added to delays")

    # Tracking
    strict_transitions: bool = Field(
        default=True, description="Reject status changes outside the forward path"
    )
    minutes_per_km: float = Field(default=2.0, description="Delivery minutes per km")
    urban_speed_kmh: float = Field(default=30.0, description="Assumed courier speed")

    # Notifications
    notification_outbox_key: str = Field(
        default="notifications:outbox", description="Redis list holding pending events"
    )
    notification_processing_key: str = Field(
        default="notifications:processing",
        description="Redis list holding events currently being sent",
    )
    notification_max_attempts: int = Field(
        default=3, description="Send attempts per event before it is dropped"
    )
    notification_timeout: float = Field(default=10.0, description="Gateway timeout in seconds")
    sms_gateway_url: str | None = Field(default=None, description="SMS gateway endpoint")
    sms_api_key: str | None = Field(default=None, description="SMS gateway API key")
    email_api_url: str | None = Field(default=None, description="Email service endpoint")
    email_api_key: str | None = Field(default=None, description="Email service API key")
    email_sender: str = Field(
        default="siparis@example.com", description="From address for status emails"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v_upper


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

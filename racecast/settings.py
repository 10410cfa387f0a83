"""
Pydantic Settings for Environment Variable Validation

Validates environment variables at startup and provides type-safe access.
Uses pydantic-settings for automatic .env file loading and validation.

Usage:
    from racecast.settings import settings

    base_url = settings.racing_api_base_url
    interval = settings.prediction_interval_seconds
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from racecast.config import (
    RACING_API_BASE_URL_DEFAULT,
    RACING_API_TIMEOUT,
    SCHEDULER_EXTERNAL_CALL_TIMEOUT,
    SCHEDULER_PREDICTION_INTERVAL_SECONDS,
    SCHEDULER_RESULT_INTERVAL_SECONDS,
)


class Settings(BaseSettings):
    """Application settings with environment variable validation."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Database Settings
    # =========================================================================
    db_host: str = Field(default="localhost", description="Database host")
    db_port: int = Field(default=5432, ge=1, le=65535, description="Database port")
    db_name: str = Field(default="racecast", description="Database name")
    db_user: str = Field(default="postgres", description="Database user")
    db_password: str = Field(default="", description="Database password")
    db_mode: str = Field(
        default="mock",
        description="Database mode: 'local' for real DB, 'mock' for in-memory storage",
    )

    @field_validator("db_mode")
    @classmethod
    def validate_db_mode(cls, v: str) -> str:
        allowed = {"local", "mock"}
        if v not in allowed:
            raise ValueError(f"db_mode must be one of {allowed}")
        return v

    # =========================================================================
    # Racing API Settings
    # =========================================================================
    racing_api_base_url: str = Field(
        default=RACING_API_BASE_URL_DEFAULT, description="Racing data API base URL"
    )
    racing_api_username: str = Field(default="", description="Racing API username")
    racing_api_password: str = Field(default="", description="Racing API password")
    racing_api_mode: str = Field(
        default="mock",
        description="Racing API mode: 'live' for the real feed, 'mock' for fixtures",
    )
    racing_api_timeout: int = Field(
        default=RACING_API_TIMEOUT, ge=1, description="HTTP timeout per request (seconds)"
    )

    @field_validator("racing_api_mode")
    @classmethod
    def validate_racing_api_mode(cls, v: str) -> str:
        allowed = {"live", "mock"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"racing_api_mode must be one of {allowed}")
        return v_lower

    # =========================================================================
    # Agent Settings
    # =========================================================================
    prediction_interval_seconds: int = Field(
        default=SCHEDULER_PREDICTION_INTERVAL_SECONDS,
        ge=1,
        description="Prediction agent cadence (seconds)",
    )
    result_interval_seconds: int = Field(
        default=SCHEDULER_RESULT_INTERVAL_SECONDS,
        ge=1,
        description="Result collector cadence (seconds)",
    )
    external_call_timeout: float = Field(
        default=SCHEDULER_EXTERNAL_CALL_TIMEOUT,
        gt=0,
        description="Upper bound for one external call inside a cycle (seconds)",
    )

    # =========================================================================
    # Logging
    # =========================================================================
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format: 'json' or 'text'")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v_upper

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        allowed = {"json", "text"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"log_format must be one of {allowed}")
        return v_lower

    # =========================================================================
    # Timezone
    # =========================================================================
    tz: str = Field(default="Pacific/Auckland", description="Timezone")

    # =========================================================================
    # Helper Properties
    # =========================================================================
    @property
    def is_mock_mode(self) -> bool:
        """Check if the database runs in mock mode."""
        return self.db_mode == "mock"

    @property
    def is_live_feed(self) -> bool:
        """Check if the racing API talks to the real feed."""
        return self.racing_api_mode == "live"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()

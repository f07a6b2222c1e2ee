"""
Configuration Management for Stewardly

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Storage location, the fallback currency and the first-use plan are
the only knobs; everything else is a fixed part of the locking model.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Flat storage backend configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STEWARDLY_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: str = Field(
        default="memory",
        description="Storage backend: 'memory' or 'json'"
    )
    data_dir: Path = Field(
        default=Path("./data"),
        description="Directory holding one JSON document per storage key"
    )
    write_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times a flat-file write is attempted"
    )

    @field_validator('backend')
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Only the two shipped backends are accepted."""
        value = v.strip().lower()
        if value not in {"memory", "json"}:
            raise ValueError(f"Unsupported storage backend: {v}. Use 'memory' or 'json'")
        return value


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="STEWARDLY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Plans
    default_currency: str = Field(
        default="SGD",
        min_length=3,
        max_length=3,
        description="Currency used for the seeded plan and as fallback"
    )
    default_plan_name: str = Field(
        default="Default Plan",
        description="Name of the plan seeded on first use"
    )
    seed_default_plan: bool = Field(
        default=True,
        description="Create the default plan when no plan exists yet"
    )

    # Audit trail
    max_audit_events: int = Field(
        default=1000,
        ge=10,
        le=100000,
        description="Audit events kept in storage (oldest dropped first)"
    )

    # Recurrence
    recurrence_history_start: str = Field(
        default="2020-01",
        pattern=r"^\d{4}-(0[1-9]|1[0-2])$",
        description="First period projected for recurring income without a start date"
    )

    @field_validator('default_currency')
    @classmethod
    def uppercase_currency(cls, v: str) -> str:
        return v.strip().upper()


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.storage
        results["storage"] = True
    except Exception as e:
        results["storage"] = False
        results["storage_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results

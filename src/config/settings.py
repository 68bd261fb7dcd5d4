"""
Configuration Management for Expense Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MindeeSettings(BaseSettings):
    """Mindee text recognition configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MINDEE_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Mindee API key"
    )
    recognition_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Upper bound for a single recognition call"
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per recognition call before giving up"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    snapshot_sheet_name: str = Field(
        default="Snapshots",
        description="Name of the sheet holding the state snapshots"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Persistence
    store_name: str = Field(
        default="expense-store",
        min_length=1,
        description="Key under which the state snapshot is stored"
    )
    storage_backend: str = Field(
        default="file",
        pattern="^(file|google_sheets)$",
        description="Where snapshots are persisted"
    )
    data_dir: str = Field(
        default=".expense-tracker",
        description="Directory for file-backed snapshots"
    )

    # Defaults
    default_currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="Currency used for a fresh store"
    )
    recent_transactions_limit: int = Field(
        default=5,
        ge=1,
        le=100,
        description="How many transactions the overview lists"
    )

    @field_validator('default_currency')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()


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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def mindee(self) -> MindeeSettings:
        return MindeeSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

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

    for name in ("mindee", "google_sheets", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results

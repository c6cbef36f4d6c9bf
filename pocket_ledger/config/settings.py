"""
Configuration Management for Pocket Ledger

Every knob is read from the environment (or .env) through pydantic-settings.
Authentication lives outside the ledger, so the signed-in user is just
configuration: the record store is scoped to `APP_USER_ID`.
"""

import warnings
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets record store configuration."""

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

    # Worksheets inside that spreadsheet
    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Name of the sheet for transactions"
    )
    profiles_sheet_name: str = Field(
        default="Profiles",
        description="Name of the sheet for user profiles"
    )

    # Sheets has no push notifications; live queries poll
    poll_interval_seconds: float = Field(
        default=5.0,
        ge=0.5,
        le=300.0,
        description="How often a live query re-reads the sheet"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn, but do not fail, when the key file is absent."""
        if not Path(v).exists():
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class AppSettings(BaseSettings):
    """
    Ledger-wide settings: who the user is, how amounts look, what is allowed.
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    environment: str = Field(
        default="development",
        description="development, staging or production"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug logging"
    )

    # Signed-in user (set by whatever handles authentication)
    user_id: str = Field(
        default="local-user",
        min_length=1,
        description="Owner of the record set"
    )
    user_email: Optional[str] = Field(
        default=None,
        description="Fallback display name when the profile has no name"
    )

    # Display
    currency_symbol: str = Field(
        default="₹",
        max_length=4,
        description="Symbol shown next to amounts"
    )
    default_chart_days: int = Field(
        default=0,
        ge=0,
        description="Initial chart range in days back from today (0 = all time)"
    )

    # Validation thresholds
    max_transaction_amount: float = Field(
        default=100000000.0,
        gt=0,
        description="Largest amount a single transaction may carry"
    )


class Settings(BaseSettings):
    """
    Entry point to every settings section.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily so the in-memory store works
    # without any Google credentials configured.

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Process-wide settings, built once.

    Tests call get_settings.cache_clear() after changing the environment.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Try loading each section.

    Returns a dict of {setting_name: is_valid}, plus `<name>_error`
    entries describing what failed. Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.google_sheets
        results["google_sheets"] = True
    except Exception as e:
        results["google_sheets"] = False
        results["google_sheets_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results

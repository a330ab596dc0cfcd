"""
Configuration Management for Thara

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


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

    # One worksheet per collection
    users_sheet_name: str = Field(default="Users")
    transactions_sheet_name: str = Field(default="Transactions")
    obligations_sheet_name: str = Field(default="Obligations")
    goals_sheet_name: str = Field(default="Goals")
    assets_sheet_name: str = Field(default="Assets")
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


class LedgerSettings(BaseSettings):
    """
    Ledger behaviour settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="THARA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    default_cycle_start_day: int = Field(
        default=23,
        ge=1,
        le=28,
        description="Cycle start day given to newly created profiles"
    )
    currency_symbol: str = Field(
        default="ر.ع",
        description="Symbol appended to formatted amounts"
    )
    recent_transactions_limit: int = Field(
        default=5,
        ge=1,
        le=100,
        description="How many transactions the recent list shows"
    )
    storage_backend: str = Field(
        default="memory",
        pattern="^(memory|google_sheets)$",
        description="Which persistence backend to use"
    )


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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()


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
    Check that the settings needed by the configured backend load.

    Google Sheets settings are only required when the backend is
    "google_sheets". Returns {section: is_valid}, plus "<section>_error"
    messages for failing sections.
    """
    results: dict = {}
    settings = get_settings()

    try:
        backend = settings.ledger.storage_backend
        results["ledger"] = True
    except ValidationError as e:
        results["ledger"] = False
        results["ledger_error"] = str(e)
        return results

    if backend == "google_sheets":
        try:
            _ = settings.google_sheets
            results["google_sheets"] = True
        except ValidationError as e:
            results["google_sheets"] = False
            results["google_sheets_error"] = str(e)

    return results

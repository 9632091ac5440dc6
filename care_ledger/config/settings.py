"""
Configuration Management for Care Ledger

Every setting comes from the environment (or a .env file) through
pydantic-settings, one class per concern. Ledger business rules, the
Sheets backend and the Streamlit page are configured independently so a
missing spreadsheet id never blocks local development.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Business rules for fees, metrics and error classification."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="LEDGER_",
        extra="ignore"
    )

    default_due_day: int = Field(
        default=5,
        ge=1,
        le=28,
        description="Day of the month generated fees fall due"
    )
    upcoming_short_window_days: int = Field(
        default=7,
        ge=1,
        description="Short horizon for upcoming payable dues"
    )
    upcoming_long_window_days: int = Field(
        default=30,
        ge=1,
        description="Long horizon for upcoming payable dues"
    )
    auth_error_code: str = Field(
        default="PGRST301",
        description="Backend error code that means the session is no longer valid"
    )
    currency_symbol: str = Field(
        default="R$",
        description="Symbol used when formatting amounts"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
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

    # Logging
    debug_mode: bool = Field(
        default=False,
        description="Log at DEBUG regardless of log_level"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )

    # Presentation
    page_size: int = Field(
        default=20,
        ge=1,
        le=200,
        description="Rows per page in transaction listings"
    )

    @property
    def effective_log_level(self) -> str:
        """Level handed to the stdlib logger behind structlog."""
        return "DEBUG" if self.debug_mode else self.log_level.upper()


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
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

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
        _ = settings.ledger
        results["ledger"] = True
    except Exception as e:
        results["ledger"] = False
        results["ledger_error"] = str(e)

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

"""
Configuration Management for Fintrack

Settings come from environment variables (and an optional .env file),
validated by pydantic-settings.

DESIGN DECISION: One module owns every configurable value.
Connection parameters for the remote store live next to the sync
policy knobs so a deployment can be reviewed in one place.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets remote store configuration."""

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

    # One worksheet per entity kind
    incomes_sheet_name: str = Field(
        default="Incomes",
        description="Name of the sheet for incomes"
    )
    expenses_sheet_name: str = Field(
        default="Expenses",
        description="Name of the sheet for expenses"
    )
    bank_accounts_sheet_name: str = Field(
        default="BankAccounts",
        description="Name of the sheet for bank accounts"
    )
    budgets_sheet_name: str = Field(
        default="Budgets",
        description="Name of the sheet for budgets"
    )

    poll_interval_seconds: float = Field(
        default=5.0,
        gt=0,
        le=300,
        description="How often subscriptions poll the sheet for changes"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Only warn about a missing credentials file; it may be mounted at runtime."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Remote sync will fall back to memory until it is present."
            )
        return v

    def sheet_name_for(self, collection: str) -> str:
        """Map the last segment of a collection path to its worksheet."""
        names = {
            "incomes": self.incomes_sheet_name,
            "expenses": self.expenses_sheet_name,
            "bankAccounts": self.bank_accounts_sheet_name,
            "budgets": self.budgets_sheet_name,
        }
        try:
            return names[collection]
        except KeyError:
            raise ValueError(f"No worksheet configured for collection: {collection}")


class SyncSettings(BaseSettings):
    """Synchronization policy configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SYNC_",
        extra="ignore"
    )

    fallback_on_empty_snapshot: bool = Field(
        default=True,
        description="Re-fetch directly when a push reports an empty collection"
    )
    auto_select_first_account: bool = Field(
        default=True,
        description="Select the first bank account when none is selected"
    )
    upcoming_bills_window_days: int = Field(
        default=31,
        ge=1,
        le=366,
        description="How far ahead recurring bills count as upcoming"
    )
    default_budget_alert_threshold: float = Field(
        default=80.0,
        ge=0.0,
        le=100.0,
        description="Budget usage percentage that triggers an alert"
    )


class AppSettings(BaseSettings):
    """
    General application settings.

    Logging level and display options, read without a prefix.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for local structured logs"
    )

    # Display
    currency_prefix: str = Field(
        default="Rs.",
        max_length=8,
        description="Prefix used when formatting amounts"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Every settings group, each built on first access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily so the in-memory client works
    # without any Google configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def sync(self) -> SyncSettings:
        return SyncSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Process-wide settings.

    Cached; tests call get_settings.cache_clear() after changing the environment.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Try to load every settings group.

    Returns {group_name: loaded_ok}, plus an error message per failed group,
    so startup can report what is missing instead of crashing.
    """
    results = {}

    settings = get_settings()

    for name in ("google_sheets", "sync", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results

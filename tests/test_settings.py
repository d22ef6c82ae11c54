"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from fintrack.config import (
    AppSettings,
    GoogleSheetsSettings,
    SyncSettings,
    get_settings,
    validate_all_settings,
)


class TestSyncSettings:
    """Tests for the sync policy knobs."""

    def test_defaults(self):
        """Test the defaults match the dashboard behavior."""
        settings = SyncSettings()

        assert settings.fallback_on_empty_snapshot is True
        assert settings.auto_select_first_account is True
        assert settings.upcoming_bills_window_days == 31
        assert settings.default_budget_alert_threshold == 80.0

    def test_env_override(self, monkeypatch):
        """Test SYNC_ variables override the defaults."""
        monkeypatch.setenv("SYNC_FALLBACK_ON_EMPTY_SNAPSHOT", "false")
        monkeypatch.setenv("SYNC_UPCOMING_BILLS_WINDOW_DAYS", "7")

        settings = get_settings().sync

        assert settings.fallback_on_empty_snapshot is False
        assert settings.upcoming_bills_window_days == 7

    def test_window_must_be_positive(self):
        """Test an empty upcoming window is rejected."""
        with pytest.raises(ValidationError):
            SyncSettings(upcoming_bills_window_days=0)


class TestGoogleSheetsSettings:
    """Tests for the remote store configuration."""

    def test_sheet_names(self, tmp_path):
        """Test every collection maps to its worksheet."""
        credentials = tmp_path / "creds.json"
        credentials.write_text("{}")
        settings = GoogleSheetsSettings(
            credentials_path=str(credentials),
            spreadsheet_id="abc",
        )

        assert settings.sheet_name_for("incomes") == "Incomes"
        assert settings.sheet_name_for("expenses") == "Expenses"
        assert settings.sheet_name_for("bankAccounts") == "BankAccounts"
        assert settings.sheet_name_for("budgets") == "Budgets"
        assert settings.poll_interval_seconds == 5.0

        with pytest.raises(ValueError):
            settings.sheet_name_for("goals")

    def test_missing_credentials_file_warns(self):
        """Test a missing credentials file warns instead of failing."""
        with pytest.warns(UserWarning):
            GoogleSheetsSettings(credentials_path="/nonexistent.json", spreadsheet_id="abc")

    def test_required_fields(self, monkeypatch):
        """Test the spreadsheet must be configured."""
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)

        with pytest.raises(ValidationError):
            GoogleSheetsSettings()


class TestAppSettings:
    """Tests for application settings."""

    def test_log_level_is_validated(self):
        """Test unknown log levels are rejected."""
        with pytest.raises(ValidationError):
            AppSettings(log_level="LOUD")

    def test_currency_prefix_default(self):
        """Test amounts are shown in rupees by default."""
        assert AppSettings().currency_prefix == "Rs."


class TestValidateAll:
    """Tests for the startup check."""

    def test_reports_missing_google_configuration(self, monkeypatch):
        """Test unconfigured storage is reported, not raised."""
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)

        results = validate_all_settings()

        assert results["google_sheets"] is False
        assert "google_sheets_error" in results
        assert results["sync"] is True
        assert results["app"] is True

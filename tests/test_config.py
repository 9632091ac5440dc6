"""
Tests for settings.
"""

import pytest

from care_ledger.config import AppSettings, LedgerSettings


class TestAppSettings:
    """Tests for the Streamlit page settings."""

    def test_log_level_normalised(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        assert AppSettings().effective_log_level == "WARNING"

    def test_debug_mode_forces_debug_level(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        monkeypatch.setenv("DEBUG_MODE", "true")
        assert AppSettings().effective_log_level == "DEBUG"


class TestLedgerSettings:
    """Tests for the ledger business rules."""

    def test_defaults(self):
        settings = LedgerSettings()
        assert settings.default_due_day == 5
        assert settings.currency_symbol == "R$"

    def test_due_day_must_exist_in_every_month(self, monkeypatch):
        monkeypatch.setenv("LEDGER_DEFAULT_DUE_DAY", "31")
        with pytest.raises(ValueError):
            LedgerSettings()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

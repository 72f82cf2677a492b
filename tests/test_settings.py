"""Tests for environment-driven configuration."""

import pytest
from pydantic import ValidationError

from event_budget.config import (
    AppSettings,
    GeminiSettings,
    LiveVoiceSettings,
    get_settings,
    validate_all_settings,
)


class TestAppSettings:
    """Tests for the dashboard settings."""

    def test_defaults(self):
        """Test the default values."""
        settings = AppSettings()
        assert settings.currency_code == "CLP"
        assert settings.low_budget_threshold_pct == 15.0
        assert settings.warning_budget_threshold_pct == 40.0
        assert settings.supported_formats_list == ["xlsx", "xls"]
        assert settings.max_upload_size_bytes == 10 * 1024 * 1024

    def test_formats_are_normalized(self):
        """Test that the format list is trimmed and lowercased."""
        settings = AppSettings(supported_import_formats=" XLSX , xls")
        assert settings.supported_formats_list == ["xlsx", "xls"]

    def test_thresholds_must_be_ordered(self):
        """Test that warning cannot sit below critical."""
        with pytest.raises(ValidationError):
            AppSettings(low_budget_threshold_pct=50, warning_budget_threshold_pct=40)

    def test_reads_environment(self, monkeypatch):
        """Test that values come from environment variables."""
        monkeypatch.setenv("SEED_DEMO_DATA", "false")
        monkeypatch.setenv("MAX_UPLOAD_SIZE_MB", "2")
        settings = AppSettings()
        assert settings.seed_demo_data is False
        assert settings.max_upload_size_mb == 2


class TestGeminiSettings:
    """Tests for the advisor settings."""

    def test_api_key_required(self):
        """Test that a missing key fails validation."""
        with pytest.raises(ValidationError):
            GeminiSettings()

    def test_prefixed_environment(self, monkeypatch):
        """Test the GEMINI_ prefix."""
        monkeypatch.setenv("GEMINI_API_KEY", "abc")
        monkeypatch.setenv("GEMINI_TEMPERATURE", "0.3")
        settings = GeminiSettings()
        assert settings.api_key == "abc"
        assert settings.temperature == 0.3

    def test_live_defaults(self):
        """Test the voice session defaults."""
        settings = LiveVoiceSettings()
        assert settings.input_sample_rate == 16000
        assert settings.output_sample_rate == 24000
        assert settings.voice_name == "Zephyr"


class TestValidateAllSettings:
    """Tests for the startup check."""

    def test_reports_missing_key(self):
        """Test that a missing key is reported, not raised."""
        results = validate_all_settings()
        assert results["gemini"] is False
        assert "gemini_error" in results
        assert results["app"] is True
        assert results["live_voice"] is True

    def test_all_valid(self, monkeypatch):
        """Test a fully configured environment."""
        monkeypatch.setenv("GEMINI_API_KEY", "abc")
        results = validate_all_settings()
        assert results == {"gemini": True, "live_voice": True, "app": True}

    def test_settings_are_cached(self):
        """Test that get_settings returns one instance until cleared."""
        assert get_settings() is get_settings()
        first = get_settings()
        get_settings.cache_clear()
        assert get_settings() is not first

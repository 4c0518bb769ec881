"""Unit tests for configuration module."""

import pytest
from pydantic import ValidationError

from recipient_suggest.config import Settings, get_settings


class TestSettings:
    """Test suite for Settings class."""

    def test_default_settings(self) -> None:
        """Test that default settings are properly initialized."""
        settings = Settings()

        assert settings.index_folders == ["inbox", "sent", "draft", "trash"]
        assert settings.index_page_size == 100
        assert settings.index_checkpoint_interval == 500
        assert settings.index_max_pages == 50
        assert settings.fallback_thread_count == 25
        assert settings.suggestion_limit == 10
        assert settings.debounce_seconds == 0.3
        assert settings.log_level == "INFO"
        assert settings.debug is False

    def test_settings_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test loading settings from environment variables."""
        monkeypatch.setenv("RECIPIENT_SUGGEST_ACCOUNT_ID", "work")
        monkeypatch.setenv("RECIPIENT_SUGGEST_INDEX_MAX_PAGES", "5")
        monkeypatch.setenv("RECIPIENT_SUGGEST_DEBUG", "true")

        # Clear the cache to ensure fresh settings
        get_settings.cache_clear()

        settings = get_settings()

        assert settings.account_id == "work"
        assert settings.index_max_pages == 5
        assert settings.debug is True

        # Clean up
        get_settings.cache_clear()

    def test_index_folders_are_normalized(self) -> None:
        """Test that folder names are trimmed and lower-cased."""
        settings = Settings(index_folders=[" Sent ", "INBOX", ""])

        assert settings.index_folders == ["sent", "inbox"]

    def test_invalid_tuning_values_rejected(self) -> None:
        """Test that nonsensical tuning values fail validation."""
        with pytest.raises(ValidationError):
            Settings(index_page_size=0)
        with pytest.raises(ValidationError):
            Settings(index_folders=[])

    def test_get_settings_returns_cached_instance(self) -> None:
        """Test that get_settings returns the same cached instance."""
        get_settings.cache_clear()

        settings1 = get_settings()
        settings2 = get_settings()

        assert settings1 is settings2

        # Clean up
        get_settings.cache_clear()

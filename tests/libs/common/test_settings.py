"""Tests for settings loading and validation."""

import os
from unittest.mock import patch

import pytest
from common.config.settings import Settings, TitleLanguageOption, get_settings
from pydantic import ValidationError


class TestSettingsDefaults:
    def test_anidb_defaults(self, settings: Settings):
        assert settings.anidb_client_name == "mediabrowser"
        assert settings.anidb_min_request_interval == 3.0
        assert settings.anidb_average_request_interval == 5.0
        assert settings.anidb_cooldown_window == 300.0
        assert settings.anidb_wait_time_ms == 0

    def test_behaviour_defaults(self, settings: Settings):
        assert settings.tidy_genre_list is True
        assert settings.preferred_title_language == TitleLanguageOption.USE_LIBRARY_SETTING
        assert settings.prefer_romaji is False


class TestSettingsEnvironment:
    def test_environment_overrides(self):
        env = {
            "TIDY_GENRE_LIST": "false",
            "PREFERRED_TITLE_LANGUAGE": "romaji",
            "ANIDB_WAIT_TIME_MS": "1500",
        }
        with patch.dict(os.environ, env):
            settings = Settings(_env_file=None)

        assert settings.tidy_genre_list is False
        assert settings.prefer_romaji is True
        assert settings.anidb_wait_time_ms == 1500

    def test_case_insensitive_environment(self):
        with patch.dict(os.environ, {"anidb_client_name": "myclient"}):
            settings = Settings(_env_file=None)
        assert settings.anidb_client_name == "myclient"

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestSettingsValidation:
    def test_log_level_is_normalized(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValidationError, match="Log level must be one of"):
            Settings(_env_file=None, log_level="LOUD")

    def test_negative_wait_time_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, anidb_wait_time_ms=-1)

    def test_unknown_title_language_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, preferred_title_language="klingon")

"""
Tests for Configuration Loading
===============================
"""

import pytest

from momoxrss.config.settings import DiscordSettings, MomoXRSSSettings, get_settings


class TestSettings:
    def test_defaults(self):
        settings = MomoXRSSSettings()

        assert settings.app_name == "MomoXRSS"
        assert settings.api.port == 3000
        assert settings.api.allowed_origin == "*"
        assert settings.discord.api_base == "https://discord.com/api/v10"
        assert settings.discord.max_retries == 2
        assert settings.discord.default_retry_after_ms == 1000
        assert settings.fetcher.timeout_seconds == 20.0
        assert settings.scheduler.tick_seconds == 60.0

    def test_nested_env_override(self, monkeypatch):
        monkeypatch.setenv("MOMOXRSS_API__API_KEY", "from-env")
        monkeypatch.setenv("MOMOXRSS_SCHEDULER__TICK_SECONDS", "5")

        settings = MomoXRSSSettings()

        assert settings.api.api_key == "from-env"
        assert settings.scheduler.tick_seconds == 5.0

    def test_blank_bot_token_is_unset(self):
        assert DiscordSettings(bot_token="   ").bot_token is None
        assert DiscordSettings(bot_token=" abc ").bot_token == "abc"

    def test_effective_log_level_in_debug(self):
        assert MomoXRSSSettings(debug=True).get_effective_log_level() == "DEBUG"

    def test_get_settings_is_singleton(self):
        assert get_settings() is get_settings()

    def test_invalid_value_rejected(self):
        with pytest.raises(ValueError):
            DiscordSettings(max_retries=-1)

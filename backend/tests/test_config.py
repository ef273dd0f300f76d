"""Tests for app.config settings parsing."""

import pytest

from app.config import SETUP_INSTRUCTIONS, Settings
from app.errors import ConfigError


class TestSettings:
    def test_api_key_read_from_google_api_key(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_API_KEY", " key-123 ")
        settings = Settings.from_env(autoload_dotenv=False)
        assert settings.google_api_key == "key-123"
        assert settings.missing_llm_fields() == []

    def test_legacy_api_key_variable_is_accepted(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
        monkeypatch.setenv("API_KEY", "legacy")
        settings = Settings.from_env(autoload_dotenv=False)
        assert settings.google_api_key == "legacy"

    def test_missing_key_is_reported(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
        monkeypatch.delenv("API_KEY", raising=False)
        settings = Settings.from_env(autoload_dotenv=False)
        assert settings.missing_llm_fields() == ["GOOGLE_API_KEY"]
        with pytest.raises(ConfigError) as exc_info:
            settings.require_api_key()
        assert str(exc_info.value) == SETUP_INSTRUCTIONS

    def test_upload_defaults(self, monkeypatch):
        monkeypatch.delenv("LARGE_VIDEO_CONFIRM_BYTES", raising=False)
        monkeypatch.delenv("MAX_UPLOAD_BYTES", raising=False)
        monkeypatch.delenv("GENERATION_TEMPERATURE", raising=False)
        settings = Settings.from_env(autoload_dotenv=False)
        assert settings.large_video_confirm_bytes == 50 * 1024 * 1024
        assert settings.max_upload_bytes == 500 * 1024 * 1024
        assert settings.generation_temperature is None

    def test_invalid_numbers_fall_back(self, monkeypatch):
        monkeypatch.setenv("GENERATION_TIMEOUT_SECONDS", "soon")
        monkeypatch.setenv("MAX_UPLOAD_BYTES", "-5")
        monkeypatch.setenv("GENERATION_TEMPERATURE", "warm")
        settings = Settings.from_env(autoload_dotenv=False)
        assert settings.generation_timeout_seconds == 600
        assert settings.max_upload_bytes == 1
        assert settings.generation_temperature is None

    def test_dotenv_does_not_override_environment(self, monkeypatch, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# local\nGOOGLE_API_KEY=from-file\nSETTINGS_FILE='/tmp/voiceover.json'\n",
            encoding="utf-8",
        )
        monkeypatch.setenv("GOOGLE_API_KEY", "from-env")
        monkeypatch.setenv("SETTINGS_FILE", "placeholder")
        monkeypatch.delenv("SETTINGS_FILE")
        settings = Settings.from_env(dotenv_files=(env_file,))
        assert settings.google_api_key == "from-env"
        assert settings.settings_file == "/tmp/voiceover.json"

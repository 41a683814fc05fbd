"""Tests for server configuration.

These tests cover:
1. Default values, including the loan policy
2. Environment variable loading
3. Validation of names, versions, transports and ranges
4. Store selection and secret handling
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from hikmah_library.config import LibrarySettings, get_settings, reset_settings


def clean_settings(**overrides) -> LibrarySettings:
    return LibrarySettings(_env_file=None, **overrides)


class TestLibrarySettings:
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = clean_settings()

        assert settings.server_name == "hikmah-library"
        assert settings.server_version == "0.1.0"
        assert settings.transport == "stdio"
        assert settings.database_path == Path("data/library.db")
        assert settings.database_url is None
        assert settings.seed_on_startup is True

        # Loan policy
        assert settings.loan_period_days == 14
        assert settings.renewal_period_days == 14
        assert settings.renewal_grace_days == 0
        assert settings.max_renewals == 3

        # Assistant
        assert settings.ai_provider == "openai"
        assert settings.ai_model == "gpt-4o"
        assert settings.ai_temperature == 0.5
        assert settings.ai_max_tokens == 1000
        assert settings.openai_api_key is None

    def test_environment_variable_loading(self):
        env_vars = {
            "HIKMAH_LIBRARY_SERVER_NAME": "hikmah-test",
            "HIKMAH_LIBRARY_DATABASE_URL": "memory://",
            "HIKMAH_LIBRARY_LOAN_PERIOD_DAYS": "21",
            "HIKMAH_LIBRARY_MAX_RENEWALS": "1",
            "HIKMAH_LIBRARY_AI_PROVIDER": "sampling",
            "HIKMAH_LIBRARY_OPENAI_API_KEY": "sk-test",
            "HIKMAH_LIBRARY_LOG_LEVEL": "debug",
        }

        with patch.dict(os.environ, env_vars):
            settings = clean_settings()

        assert settings.server_name == "hikmah-test"
        assert settings.uses_memory_store is True
        assert settings.loan_period_days == 21
        assert settings.max_renewals == 1
        assert settings.ai_provider == "sampling"
        assert settings.openai_api_key == "sk-test"
        assert settings.log_level == "DEBUG"
        assert settings.is_development is True

    @pytest.mark.parametrize("name", ["Hikmah_Library", "hikmah library", "hl", "x" * 51])
    def test_invalid_server_names(self, name):
        with pytest.raises(ValidationError):
            clean_settings(server_name=name)

    @pytest.mark.parametrize("version", ["1.0", "v1.0.0", "1.0.0.0"])
    def test_invalid_versions(self, version):
        with pytest.raises(ValidationError):
            clean_settings(server_version=version)

    def test_prerelease_version(self):
        assert clean_settings(server_version="1.0.0-beta.1").server_version == "1.0.0-beta.1"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"transport": "websocket"},
            {"http_port": 80},
            {"loan_period_days": 0},
            {"max_renewals": -1},
            {"renewal_grace_days": -1},
            {"ai_provider": "anthropic"},
            {"ai_timeout_seconds": 0},
            {"log_level": "TRACE"},
        ],
    )
    def test_out_of_range_values(self, overrides):
        with pytest.raises(ValidationError):
            clean_settings(**overrides)

    def test_database_url_generation(self, tmp_path):
        settings = clean_settings(database_path=tmp_path / "library.db")
        assert settings.get_database_url() == f"sqlite:///{tmp_path / 'library.db'}"
        assert settings.uses_memory_store is False

        explicit = clean_settings(database_url="sqlite:///other.db")
        assert explicit.get_database_url() == "sqlite:///other.db"

    def test_api_key_not_in_repr(self):
        settings = clean_settings(openai_api_key="sk-secret")
        assert "sk-secret" not in repr(settings)

    def test_server_info(self):
        assert clean_settings().server_info == {
            "name": "hikmah-library",
            "version": "0.1.0",
            "transport": "stdio",
        }

    def test_global_settings_singleton(self):
        reset_settings()
        try:
            first = get_settings()
            assert get_settings() is first
            reset_settings()
            assert get_settings() is not first
        finally:
            reset_settings()

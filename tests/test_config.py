"""
Tests for environment-driven settings.
"""

import pytest
from pydantic import ValidationError

from hash_cache.core.config import Settings, get_settings


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.REDIS_URL.startswith("redis://")
        assert settings.REDIS_MAX_CONNECTIONS == 10
        assert settings.CACHE_COMPRESS is True

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("REDIS_URL", "redis://cache:6380/1")
        monkeypatch.setenv("CACHE_RACE_CONDITION_TTL", "15")
        monkeypatch.setenv("CACHE_NAMESPACE", "svc")

        settings = Settings(_env_file=None)

        assert settings.REDIS_URL == "redis://cache:6380/1"
        assert settings.CACHE_RACE_CONDITION_TTL == 15
        assert settings.CACHE_NAMESPACE == "svc"

    def test_rejects_unknown_scheme(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, REDIS_URL="http://localhost:6379")

    def test_log_level_is_normalized(self):
        assert Settings(_env_file=None, LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    def test_default_cache_options(self):
        settings = Settings(
            _env_file=None,
            CACHE_NAMESPACE="svc",
            CACHE_EXPIRES_IN=60,
            CACHE_RACE_CONDITION_TTL=5,
            CACHE_COMPRESS=False,
        )

        options = settings.default_cache_options()

        assert options.namespace == "svc"
        assert options.expires_in == 60
        assert options.race_condition_ttl == 5
        assert options.compress is False

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

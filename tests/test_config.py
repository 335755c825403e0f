"""
Tests for settings loading.
"""
import pytest
from pydantic import ValidationError

from broker_cache.config import Settings


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch):
        for name in ("ENVIRONMENT", "REDIS_URL", "LOG_JSON"):
            monkeypatch.delenv(name, raising=False)

        config = Settings(_env_file=None)

        assert config.ENVIRONMENT == "production"
        assert config.REDIS_URL == "redis://localhost:6379"
        assert config.is_production is True
        assert config.is_development is False

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "development")
        monkeypatch.setenv("redis_max_connections", "12")

        config = Settings(_env_file=None)

        assert config.ENVIRONMENT == "development"
        assert config.REDIS_MAX_CONNECTIONS == 12
        assert config.is_development is True

    def test_strips_boolean_whitespace(self, monkeypatch):
        monkeypatch.setenv("LOG_JSON", " true ")
        monkeypatch.setenv("REDIS_RETRY_ON_TIMEOUT", "false\n")

        config = Settings(_env_file=None)

        assert config.LOG_JSON is True
        assert config.REDIS_RETRY_ON_TIMEOUT is False

    def test_empty_environment_rejected(self):
        with pytest.raises(ValidationError):
            Settings(ENVIRONMENT="  ", _env_file=None)

    @pytest.mark.parametrize("value", [" qa", "qa ", "qa\n"])
    def test_padded_environment_rejected(self, value):
        with pytest.raises(ValidationError):
            Settings(ENVIRONMENT=value, _env_file=None)

    def test_environment_kept_verbatim(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "Staging-EU")
        assert Settings(_env_file=None).ENVIRONMENT == "Staging-EU"

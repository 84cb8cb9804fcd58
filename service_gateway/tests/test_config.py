"""
Unit tests for gateway configuration loading.
"""

import pytest

from shared.config import get_config
from shared.errors import ConfigurationError
from shared.test_helpers import get_mock_config, make_config


class TestConfig:
    """Test cases for settings loading."""

    def test_environment_variables(self, monkeypatch):
        """Settings are read from the environment, case-insensitively."""
        monkeypatch.setenv("JWT_SECRET", "env-secret")
        monkeypatch.setenv("COURSE_GENERATION_URL", "http://course:9000")
        monkeypatch.setenv("DSA_SERVICE_API_KEY", "dsa-override")
        monkeypatch.setenv("CIRCUIT_FAILURE_THRESHOLD", "7")

        config = get_config("gateway", 8000)

        assert config.jwt_secret == "env-secret"
        assert config.course_generation_url == "http://course:9000"
        assert config.dsa_service_api_key == "dsa-override"
        assert config.circuit_failure_threshold == 7

    def test_missing_jwt_secret_is_fatal(self, monkeypatch):
        """A missing mandatory value aborts startup."""
        monkeypatch.delenv("JWT_SECRET", raising=False)
        monkeypatch.chdir("/")

        with pytest.raises(ConfigurationError) as exc_info:
            get_config("gateway", 8000)

        assert "jwt_secret" in exc_info.value.details["fields"]

    def test_invalid_value_is_fatal(self):
        """Out-of-range tuning values are rejected at startup."""
        values = {**get_mock_config(), "circuit_failure_threshold": 0}

        with pytest.raises(ConfigurationError):
            get_config("gateway", 8000, **values)

    def test_defaults(self):
        """Timeouts default by call class."""
        config = make_config()

        assert config.course_service_timeout_ms == 30000
        assert config.dsa_service_timeout_ms == 5000
        assert config.circuit_cooldown_seconds == 30.0
        assert config.database_url is None

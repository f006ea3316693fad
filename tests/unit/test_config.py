# -*- coding: utf-8 -*-

"""
Unit tests for the configuration module.
Verifies loading settings from environment variables.
"""

import importlib
import os
from unittest.mock import patch

import pytest

import gatekeeper.config as config_module


@pytest.fixture(autouse=True)
def restore_config():
    """Reload the config module with real values after each test."""
    yield
    importlib.reload(config_module)


def reload_with_env(env, clear=False):
    """Reload config under a patched environment with .env loading disabled."""
    with patch.dict(os.environ, env, clear=clear), patch("dotenv.load_dotenv"):
        importlib.reload(config_module)
    return config_module


class TestDefaults:
    """Tests for values used when nothing is set."""

    def test_validation_defaults(self):
        """
        What it does: Reloads config with an empty environment.
        Purpose: Documented defaults are in effect out of the box.
        """
        print("Setup: Clearing the environment...")
        config = reload_with_env({}, clear=True)

        print(f"Depth={config.VALIDATION_MAX_DEPTH} timeout={config.VALIDATION_TIMEOUT_MS}")
        assert config.VALIDATION_MAX_DEPTH == 10
        assert config.VALIDATION_MAX_ARRAY_LENGTH == 1000
        assert config.VALIDATION_MAX_STRING_LENGTH == 100000
        assert config.VALIDATION_TIMEOUT_MS == 1000
        assert config.VALIDATION_WORKER_THREADS == 8
        assert config.SANITIZE_SENSITIVE_FIELDS is True

    def test_rate_limit_defaults(self):
        """
        What it does: Reloads config with an empty environment.
        Purpose: 10/minute, 30/hour, 15 minute block, no reset on success.
        """
        config = reload_with_env({}, clear=True)

        assert config.VALIDATION_RATE_LIMITING_ENABLED is True
        assert config.VALIDATION_MAX_FAILURES_PER_MINUTE == 10
        assert config.VALIDATION_MAX_FAILURES_PER_HOUR == 30
        assert config.VALIDATION_BLOCK_DURATION_MS == 15 * 60 * 1000
        assert config.VALIDATION_RESET_ON_SUCCESS is False

    def test_cache_and_server_defaults(self):
        """
        What it does: Reloads config with an empty environment.
        Purpose: Cache is on with a 300s TTL; server listens on 0.0.0.0:8000.
        """
        config = reload_with_env({}, clear=True)

        assert config.VALIDATION_CACHE_ENABLED is True
        assert config.VALIDATION_CACHE_TTL == 300
        assert config.VALIDATION_CACHE_MAX_KEYS == 10000
        assert config.SERVER_HOST == "0.0.0.0"
        assert config.SERVER_PORT == 8000
        assert config.LOG_LEVEL == "INFO"
        assert config.APP_ENV == "development"


class TestEnvironmentOverrides:
    """Tests for values read from the environment."""

    def test_numeric_overrides(self):
        """
        What it does: Sets limits through environment variables.
        Purpose: Every limit is tunable without code changes.
        """
        print("Setup: Setting VALIDATION_* variables...")
        config = reload_with_env(
            {
                "VALIDATION_MAX_DEPTH": "4",
                "VALIDATION_TIMEOUT_MS": "250",
                "VALIDATION_MAX_FAILURES_PER_MINUTE": "3",
                "VALIDATION_BLOCK_DURATION_MS": "60000",
                "SERVER_PORT": "9000",
            }
        )

        assert config.VALIDATION_MAX_DEPTH == 4
        assert config.VALIDATION_TIMEOUT_MS == 250
        assert config.VALIDATION_MAX_FAILURES_PER_MINUTE == 3
        assert config.VALIDATION_BLOCK_DURATION_MS == 60000
        assert config.SERVER_PORT == 9000
        assert isinstance(config.SERVER_PORT, int)

    @pytest.mark.parametrize("raw", ["true", "1", "yes", "enabled", "on", "TRUE"])
    def test_truthy_spellings(self, raw):
        """
        What it does: Sets VALIDATION_RESET_ON_SUCCESS to truthy spellings.
        Purpose: Boolean flags accept the usual forms, case-insensitively.
        """
        config = reload_with_env({"VALIDATION_RESET_ON_SUCCESS": raw})
        assert config.VALIDATION_RESET_ON_SUCCESS is True

    @pytest.mark.parametrize("raw", ["false", "0", "no", "off", "whatever"])
    def test_falsy_spellings(self, raw):
        """
        What it does: Sets VALIDATION_CACHE_ENABLED to non-truthy values.
        Purpose: Anything else disables the flag.
        """
        config = reload_with_env({"VALIDATION_CACHE_ENABLED": raw})
        assert config.VALIDATION_CACHE_ENABLED is False

    def test_log_level_uppercase_conversion(self):
        """
        What it does: Sets LOG_LEVEL=warning (lowercase).
        Purpose: Level names are normalized for loguru.
        """
        config = reload_with_env({"LOG_LEVEL": "warning"})

        print(f"Comparing: Expected 'WARNING', Got '{config.LOG_LEVEL}'")
        assert config.LOG_LEVEL == "WARNING"

    def test_app_env_lowercased(self):
        """
        What it does: Sets APP_ENV=Production.
        Purpose: The production check is case-insensitive.
        """
        assert reload_with_env({"APP_ENV": "Production"}).APP_ENV == "production"


class TestSensitiveFields:
    """Tests for the sensitive field list."""

    def test_contains_credential_names(self):
        """
        What it does: Inspects SENSITIVE_FIELDS.
        Purpose: Password and token paths are always masked.
        """
        print(f"SENSITIVE_FIELDS: {config_module.SENSITIVE_FIELDS}")
        for name in ("password", "token", "secret", "apiKey", "cvv"):
            assert name in config_module.SENSITIVE_FIELDS

"""
Unit tests for configuration loading.
"""

import dataclasses

import pytest

from statusserver.config import DEFAULT_PORT, ServerConfig, load_config


class TestServerConfig:

    def test_defaults(self):
        config = ServerConfig()

        assert config.port == "10001"
        assert config.host == "0.0.0.0"
        assert config.read_timeout == 15.0
        assert config.write_timeout == 15.0
        assert config.idle_timeout == 60.0
        assert config.shutdown_timeout == 30.0

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            ServerConfig().port = "8080"

    def test_replace(self):
        original = ServerConfig()
        changed = original.replace(port="8080", log_level="DEBUG")

        assert changed.port == "8080"
        assert changed.log_level == "DEBUG"
        assert original.port == DEFAULT_PORT


class TestFromEnv:

    def test_port_unset(self, monkeypatch):
        monkeypatch.delenv("PORT", raising=False)
        assert load_config().port == "10001"

    def test_port_empty(self, monkeypatch):
        """An empty PORT falls back to the default too."""
        monkeypatch.setenv("PORT", "")
        assert load_config().port == "10001"

    def test_port_set(self, monkeypatch):
        monkeypatch.setenv("PORT", "8080")
        assert ServerConfig.from_env().port == "8080"

    def test_port_not_validated(self, monkeypatch):
        monkeypatch.setenv("PORT", "not-a-port")
        assert load_config().port == "not-a-port"

    def test_timeouts_are_fixed(self, monkeypatch):
        monkeypatch.setenv("PORT", "9000")
        config = load_config()

        assert (config.read_timeout, config.write_timeout, config.idle_timeout,
                config.shutdown_timeout) == (15.0, 15.0, 60.0, 30.0)

    def test_log_level(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        assert load_config().log_level == "INFO"

        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        assert load_config().log_level == "DEBUG"

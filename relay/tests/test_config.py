"""Tests for RelaySettings and the cached get_settings() accessor."""

from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from relay.config import (
    DEFAULT_GATEWAY_URL,
    DEFAULT_WORKSPACE,
    clear_settings_cache,
    get_settings,
)

_BASE_ENV = {
    "TELEGRAM_BOT_TOKEN": "123:abc",
    "TELEGRAM_ALLOWED_USERS": "111,222",
    "OPENCLAW_GATEWAY_TOKEN": "gw-secret",
}

_ALL_VARS = (
    *_BASE_ENV,
    "OPENCLAW_GATEWAY_URL",
    "LOG_LEVEL",
    "HEALTH_PORT",
    "AGENT_WORKSPACE",
    "GATEWAY_TIMEOUT_SECONDS",
    "LOGFIRE_TOKEN",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Start every test from a clean environment with no .env file in reach."""
    monkeypatch.chdir(tmp_path)
    for name in _ALL_VARS:
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


def _set_base_env(monkeypatch, **overrides: str) -> None:
    for k, v in {**_BASE_ENV, **overrides}.items():
        monkeypatch.setenv(k, v)


class TestRequiredValues:
    def test_loads_required_values(self, monkeypatch):
        _set_base_env(monkeypatch)
        settings = get_settings()
        assert settings.telegram_bot_token.get_secret_value() == "123:abc"
        assert settings.openclaw_gateway_token.get_secret_value() == "gw-secret"
        assert settings.telegram_allowed_users == frozenset({111, 222})

    @pytest.mark.parametrize("missing", list(_BASE_ENV))
    def test_missing_required_value_raises(self, monkeypatch, missing: str):
        _set_base_env(monkeypatch)
        monkeypatch.delenv(missing)
        with pytest.raises(ValidationError, match=missing.lower()):
            get_settings()

    def test_secrets_are_masked(self, monkeypatch):
        _set_base_env(monkeypatch)
        assert "gw-secret" not in repr(get_settings())


class TestAllowedUsers:
    def test_whitespace_around_ids_ignored(self, monkeypatch):
        _set_base_env(monkeypatch, TELEGRAM_ALLOWED_USERS=" 1 , 2,3 ")
        assert get_settings().telegram_allowed_users == frozenset({1, 2, 3})

    def test_non_numeric_entries_dropped(self, monkeypatch):
        _set_base_env(monkeypatch, TELEGRAM_ALLOWED_USERS="42,abc,,7")
        assert get_settings().telegram_allowed_users == frozenset({42, 7})

    def test_single_id(self, monkeypatch):
        _set_base_env(monkeypatch, TELEGRAM_ALLOWED_USERS="99")
        assert get_settings().telegram_allowed_users == frozenset({99})

    @pytest.mark.parametrize("value", ["", "abc", " , ,"])
    def test_no_valid_ids_is_fatal(self, monkeypatch, value: str):
        _set_base_env(monkeypatch, TELEGRAM_ALLOWED_USERS=value)
        with pytest.raises(ValidationError, match="at least one"):
            get_settings()


class TestDefaults:
    def test_optional_defaults(self, monkeypatch):
        _set_base_env(monkeypatch)
        settings = get_settings()
        assert settings.openclaw_gateway_url == DEFAULT_GATEWAY_URL
        assert settings.agent_workspace == DEFAULT_WORKSPACE
        assert settings.log_level == "info"
        assert settings.health_port == 3000
        assert settings.gateway_timeout_seconds == 120.0
        assert settings.logfire_token is None

    def test_overrides(self, monkeypatch):
        _set_base_env(
            monkeypatch,
            OPENCLAW_GATEWAY_URL="http://localhost:18789/",
            HEALTH_PORT="8080",
            AGENT_WORKSPACE="/srv/code",
            GATEWAY_TIMEOUT_SECONDS="30",
        )
        settings = get_settings()
        assert settings.openclaw_gateway_url == "http://localhost:18789"
        assert settings.health_port == 8080
        assert settings.agent_workspace == "/srv/code"
        assert settings.gateway_timeout_seconds == 30.0


class TestLogLevel:
    @pytest.mark.parametrize(
        ("raw", "level", "constant"),
        [
            ("debug", "debug", logging.DEBUG),
            ("INFO", "info", logging.INFO),
            ("warn", "warning", logging.WARNING),
            ("error", "error", logging.ERROR),
        ],
    )
    def test_levels(self, monkeypatch, raw: str, level: str, constant: int):
        _set_base_env(monkeypatch, LOG_LEVEL=raw)
        settings = get_settings()
        assert settings.log_level == level
        assert settings.logging_level == constant

    def test_unknown_level_rejected(self, monkeypatch):
        _set_base_env(monkeypatch, LOG_LEVEL="verbose")
        with pytest.raises(ValidationError, match="LOG_LEVEL"):
            get_settings()


class TestCaching:
    def test_same_instance_returned(self, monkeypatch):
        _set_base_env(monkeypatch)
        assert get_settings() is get_settings()

    def test_clear_cache_rereads_environment(self, monkeypatch):
        _set_base_env(monkeypatch)
        assert get_settings().health_port == 3000

        monkeypatch.setenv("HEALTH_PORT", "4000")
        assert get_settings().health_port == 3000

        clear_settings_cache()
        assert get_settings().health_port == 4000

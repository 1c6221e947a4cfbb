"""Tests for environment-driven configuration."""

from __future__ import annotations

import pytest
from authcore.core import config


def test_get_config_uses_app_env(monkeypatch):
    monkeypatch.setenv("APP_ENV", "Production")
    assert config.get_config() is config.ProductionConfig
    monkeypatch.setenv("APP_ENV", "unknown")
    assert config.get_config() is config.DevelopmentConfig


@pytest.mark.parametrize(("raw", "expected"), [("1", True), ("YES", True), ("off", False), ("", False)])
def test_env_bool(monkeypatch, raw, expected):
    monkeypatch.setenv("SOME_FLAG", raw)
    assert config.env_bool("SOME_FLAG") is expected


def test_env_int_rejects_garbage(monkeypatch):
    monkeypatch.setenv("SOME_NUMBER", "ten")
    with pytest.raises(ValueError):
        config.env_int("SOME_NUMBER", 1)


def test_rate_limit_rule_overrides(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_AUTH_MAX", "7")
    rule = config.rate_limit_rule("auth", limit=5, window_ms=60_000)
    assert rule == {"key_prefix": "rl:auth", "limit": 7, "window_ms": 60_000}


def test_default_policy_values():
    base = config.BaseConfig
    assert base.ACCESS_TOKEN_TTL_SECONDS == 18000
    assert base.REFRESH_TOKEN_TTL_SECONDS == 259200
    assert base.PASSWORD_RESET_TTL_SECONDS == 1800
    assert base.RATE_LIMITS["password_reset"]["limit"] == 3

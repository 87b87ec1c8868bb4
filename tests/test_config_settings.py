"""
Tests for corekit/config/settings.py

These tests verify that settings load from environment variables, validate
their values, and that the singleton can be reset between tests.
"""

import dataclasses
import logging

import pytest

from corekit.config.settings import (
    CacheSettings,
    LoggingSettings,
    Settings,
    get_settings,
    reset_settings,
)


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Start every test with no corekit variables and a fresh singleton."""
    monkeypatch.delenv("COREKIT_CACHE_DEFAULT_TTL_MS", raising=False)
    monkeypatch.delenv("COREKIT_LOG_LEVEL", raising=False)
    reset_settings()
    yield
    reset_settings()


def test_cache_settings_default_is_no_expiry():
    """Test that an unset TTL variable means no default expiry."""
    assert CacheSettings.from_env().default_ttl_ms is None


def test_cache_settings_from_env(monkeypatch):
    """Test that the TTL is parsed as an integer."""
    monkeypatch.setenv("COREKIT_CACHE_DEFAULT_TTL_MS", "1500")

    assert CacheSettings.from_env().default_ttl_ms == 1500


def test_cache_settings_empty_value_is_no_expiry(monkeypatch):
    """Test that an empty TTL variable is treated as unset."""
    monkeypatch.setenv("COREKIT_CACHE_DEFAULT_TTL_MS", "  ")

    assert CacheSettings.from_env().default_ttl_ms is None


def test_cache_settings_rejects_non_integer(monkeypatch):
    """Test that a malformed TTL fails fast with a clear message."""
    monkeypatch.setenv("COREKIT_CACHE_DEFAULT_TTL_MS", "soon")

    with pytest.raises(ValueError, match="must be an integer"):
        CacheSettings.from_env()


def test_cache_settings_rejects_negative(monkeypatch):
    """Test that a negative TTL is rejected."""
    monkeypatch.setenv("COREKIT_CACHE_DEFAULT_TTL_MS", "-10")

    with pytest.raises(ValueError, match="non-negative"):
        CacheSettings.from_env()


def test_logging_settings_default_and_case(monkeypatch):
    """Test the default level and case-insensitive parsing."""
    assert LoggingSettings.from_env().level == "WARNING"

    monkeypatch.setenv("COREKIT_LOG_LEVEL", "debug")
    settings = LoggingSettings.from_env()
    assert settings.level == "DEBUG"
    assert settings.numeric_level == logging.DEBUG


def test_logging_settings_rejects_unknown_level():
    """Test that an unknown level name is rejected."""
    with pytest.raises(ValueError, match="Invalid log level"):
        LoggingSettings(level="LOUD")


def test_settings_aggregate_from_env(monkeypatch):
    """Test that Settings collects every subsystem."""
    monkeypatch.setenv("COREKIT_CACHE_DEFAULT_TTL_MS", "200")
    monkeypatch.setenv("COREKIT_LOG_LEVEL", "INFO")

    settings = Settings.from_env()

    assert settings.cache.default_ttl_ms == 200
    assert settings.logging.level == "INFO"


def test_settings_are_frozen():
    """Test that settings objects are immutable."""
    settings = Settings()

    with pytest.raises(dataclasses.FrozenInstanceError):
        settings.cache = CacheSettings(default_ttl_ms=1)


def test_get_settings_caches_until_reset(monkeypatch):
    """Test the lazy singleton and reset_settings()."""
    monkeypatch.setenv("COREKIT_CACHE_DEFAULT_TTL_MS", "100")
    first = get_settings()

    monkeypatch.setenv("COREKIT_CACHE_DEFAULT_TTL_MS", "999")
    assert get_settings() is first
    assert get_settings().cache.default_ttl_ms == 100

    reset_settings()
    assert get_settings().cache.default_ttl_ms == 999

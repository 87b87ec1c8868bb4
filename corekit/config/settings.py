"""
Configuration settings for corekit.

**Conceptual**: This module provides strongly-typed configuration objects that
load from environment variables (via .env files). All settings are validated
when loaded, so a malformed value fails at startup rather than the first time
a cache is built.

Only defaults live here. Every component also accepts explicit arguments, and
explicit arguments always win over configuration.

This module uses python-dotenv to load .env files and dataclasses for type safety.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env from project root (dev/local environments); a missing file is fine
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class CacheSettings:
    """
    Defaults for TimedMap instances built from configuration.

    Attributes:
        default_ttl_ms: Time-to-live in milliseconds applied when set() is
                        called without one. None means entries never expire
                        unless a per-call TTL is given.
    """
    default_ttl_ms: Optional[int] = None

    def __post_init__(self):
        """Validate settings after initialization."""
        if self.default_ttl_ms is not None and self.default_ttl_ms < 0:
            raise ValueError(
                f"default_ttl_ms must be non-negative, got: {self.default_ttl_ms}"
            )

    @classmethod
    def from_env(cls) -> "CacheSettings":
        """
        Load cache settings from environment variables.

        **Environment variables**:
          - COREKIT_CACHE_DEFAULT_TTL_MS (optional): default TTL in milliseconds.
            Unset or empty means no default expiry.

        Returns:
            CacheSettings object with values loaded from environment.

        Raises:
            ValueError: If the TTL is not an integer or is negative.
        """
        ttl_str = os.getenv("COREKIT_CACHE_DEFAULT_TTL_MS", "").strip()
        if not ttl_str:
            return cls()

        try:
            default_ttl_ms = int(ttl_str)
        except ValueError:
            raise ValueError(
                f"COREKIT_CACHE_DEFAULT_TTL_MS must be an integer, got: {ttl_str}"
            )

        return cls(default_ttl_ms=default_ttl_ms)


@dataclass(frozen=True)
class LoggingSettings:
    """
    Logging configuration.

    Attributes:
        level: Level name for corekit loggers (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    level: str = "WARNING"

    def __post_init__(self):
        """Validate settings after initialization."""
        if self.level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {self.level}. Must be one of {', '.join(VALID_LOG_LEVELS)}"
            )

    @property
    def numeric_level(self) -> int:
        return getattr(logging, self.level)

    @classmethod
    def from_env(cls) -> "LoggingSettings":
        """
        Load logging settings from environment variables.

        **Environment variables**:
          - COREKIT_LOG_LEVEL (optional): level name, case-insensitive.
            Defaults to WARNING.
        """
        level = os.getenv("COREKIT_LOG_LEVEL", "WARNING").strip().upper()
        return cls(level=level)


@dataclass(frozen=True)
class Settings:
    """
    Global settings for corekit.

    **Usage pattern**:
      ```python
      from corekit.config.settings import get_settings

      settings = get_settings()
      ttl = settings.cache.default_ttl_ms
      ```

    Attributes:
        cache: Defaults for TimedMap.
        logging: Logging level configuration.
    """
    cache: CacheSettings = field(default_factory=CacheSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Load global settings from environment variables.

        Raises:
            ValueError: If any subsystem setting is malformed.
        """
        return cls(
            cache=CacheSettings.from_env(),
            logging=LoggingSettings.from_env(),
        )


# Lazily loaded singleton. Tests can build Settings(...) directly instead.
_default_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings singleton.

    Settings are loaded from environment on first call, then cached for reuse.
    Call reset_settings() to force a reload.

    Returns:
        Global Settings singleton.

    Raises:
        ValueError: If the environment holds malformed values.
    """
    global _default_settings

    if _default_settings is None:
        _default_settings = Settings.from_env()

    return _default_settings


def reset_settings():
    """
    Reset the global settings singleton (for testing).

    **Testing pattern**:
      ```python
      def test_something(monkeypatch):
          reset_settings()
          monkeypatch.setenv("COREKIT_CACHE_DEFAULT_TTL_MS", "500")
          assert get_settings().cache.default_ttl_ms == 500
      ```
    """
    global _default_settings
    _default_settings = None

"""
Tests for configuration and logging helpers
"""

import logging

import pytest
from pydantic import ValidationError

from tablecart.cart import CartStore, MemoryCartStorage, create_cart_store
from tablecart.config import Settings
from tablecart.logging import configure_logging, get_logger, sanitize_string_for_logging


@pytest.fixture
def restore_root_level():
    root = logging.getLogger()
    level = root.level
    yield root
    root.setLevel(level)


class TestSettings:
    """Tests for Settings.from_env."""

    def test_defaults(self, monkeypatch):
        """Memory backend and a one-day TTL by default."""
        for name in ("CART_STORAGE_BACKEND", "CART_TTL_SECONDS", "UPSTASH_REDIS_REST_URL", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()

        assert settings.storage_backend == "memory"
        assert settings.cart_ttl_seconds == 86400
        assert settings.redis_url == ""
        assert settings.log_level == "INFO"

    def test_from_env(self, monkeypatch):
        """Environment variables override defaults."""
        monkeypatch.setenv("CART_STORAGE_BACKEND", "Redis")
        monkeypatch.setenv("CART_TTL_SECONDS", "3600")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("TABLECART_ENV", "Production")
        monkeypatch.setenv("UPSTASH_REDIS_REST_URL", "https://redis.test")
        monkeypatch.setenv("UPSTASH_REDIS_REST_TOKEN", "token")

        settings = Settings.from_env()

        assert settings.storage_backend == "redis"
        assert settings.cart_ttl_seconds == 3600
        assert settings.redis_token == "token"
        assert settings.log_level == "DEBUG"
        assert settings.environment == "production"

    def test_invalid_backend(self, monkeypatch):
        """Unknown backends are rejected."""
        monkeypatch.setenv("CART_STORAGE_BACKEND", "sqlite")

        with pytest.raises(ValidationError):
            Settings.from_env()


class TestCreateCartStore:
    """Tests for create_cart_store."""

    def test_builds_independent_stores(self, restore_root_level):
        """Each call returns a new store; there is no shared singleton."""
        a = create_cart_store(Settings())
        b = create_cart_store(Settings())

        assert isinstance(a, CartStore)
        assert a is not b
        assert isinstance(a._storage, MemoryCartStorage)

    def test_applies_log_level(self, restore_root_level):
        """Building the store configures logging from the same settings."""
        create_cart_store(Settings(log_level="ERROR"))

        assert restore_root_level.level == logging.ERROR


class TestLogging:
    """Tests for logging helpers."""

    def test_get_logger_cached(self):
        assert get_logger("tablecart.test") is get_logger("tablecart.test")

    def test_sanitize_string(self):
        """Control characters are escaped and long values truncated."""
        assert sanitize_string_for_logging("Jane\nINFO fake") == "Jane\\nINFO fake"
        assert sanitize_string_for_logging(None) == "N/A"
        assert sanitize_string_for_logging("x" * 60, max_length=10) == "x" * 10 + "..."

    def test_configure_logging_applies_level(self, restore_root_level):
        """LOG_LEVEL from settings reaches the root logger."""
        level = configure_logging(Settings(log_level="warning"))

        assert level == logging.WARNING
        assert restore_root_level.level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self, restore_root_level):
        assert configure_logging(Settings(log_level="LOUD")) == logging.INFO
        assert restore_root_level.level == logging.INFO

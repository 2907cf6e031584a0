"""
multicache - Logging Setup Tests
"""

import json
import logging

import pytest

from multicache.cache.factory import create_cache_manager
from multicache.config import MultiCacheConfig
from multicache.observability import JSONFormatter, configure_logging, configure_logging_from_config


class TestJSONFormatter:
    """Test suite for JSONFormatter."""

    def _record(self, **extra: object) -> logging.LogRecord:
        record = logging.LogRecord(
            name="multicache.cache.manager",
            level=logging.INFO,
            pathname=__file__,
            lineno=10,
            msg="Created cache '%s'",
            args=("users",),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_core_fields(self) -> None:
        """Test the standard fields are rendered."""
        data = json.loads(JSONFormatter().format(self._record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "multicache.cache.manager"
        assert data["message"] == "Created cache 'users'"
        assert data["timestamp"].endswith("Z")
        assert "thread" in data

    def test_extra_fields(self) -> None:
        """Test extra= fields are included and non-JSON values stringified."""
        data = json.loads(JSONFormatter().format(self._record(cache_name="users", ttl_seconds=1.5, obj=object())))
        assert data["cache_name"] == "users"
        assert data["ttl_seconds"] == 1.5
        assert data["obj"].startswith("<object object")

    def test_exception(self) -> None:
        """Test exception info is rendered."""
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            import sys

            record = self._record()
            record.exc_info = sys.exc_info()
        data = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in data["exception"]


class TestConfigureLogging:
    """Test suite for configure_logging."""

    def test_json_handler(self) -> None:
        """Test JSON logs use the JSON formatter."""
        logger = configure_logging("DEBUG", json_logs=True)
        assert logger.name == "multicache"
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_repeated_calls_do_not_stack_handlers(self) -> None:
        """Test reconfiguring replaces the handler."""
        configure_logging()
        logger = configure_logging(logging.WARNING)
        assert len(logger.handlers) == 1
        assert not isinstance(logger.handlers[0].formatter, JSONFormatter)
        assert logger.level == logging.WARNING

    def test_from_config(self) -> None:
        """Test the level and format come from the configuration."""
        logger = configure_logging_from_config(MultiCacheConfig(log_level="WARNING", json_logs=True))
        assert logger.level == logging.WARNING
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test LOG_LEVEL and MULTICACHE_JSON_LOGS are applied from the environment."""
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        monkeypatch.setenv("MULTICACHE_JSON_LOGS", "true")
        logger = configure_logging_from_config()
        assert logger.level == logging.ERROR
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_default_manager_applies_logging_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test an environment-configured manager also configures package logging."""
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        monkeypatch.setenv("MULTICACHE_JSON_LOGS", "false")
        create_cache_manager()
        logger = logging.getLogger("multicache")
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
        assert not isinstance(logger.handlers[0].formatter, JSONFormatter)

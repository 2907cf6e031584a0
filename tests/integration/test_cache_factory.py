"""
multicache - Cache Manager Factory Integration Tests

Tests the named manager registry: creation from explicit or environment
configuration, reuse by name, and lifecycle management.
"""

import logging
from collections.abc import Generator
from unittest.mock import patch

import pytest

from multicache.cache.factory import (
    close_all_cache_managers,
    create_cache_manager,
    get_cache_manager,
    list_cache_managers,
    reset_cache_factory,
)
from multicache.cache.manager import CacheManager
from multicache.config import ManagerConfig
from multicache.errors import ConfigurationError, ValidationError


class TestCacheManagerFactory:
    """Test suite for the cache manager factory."""

    @pytest.fixture(autouse=True)
    def cleanup(self) -> Generator[None, None, None]:
        """Clean up manager instances after each test."""
        yield
        close_all_cache_managers()
        reset_cache_factory()

    def test_create_default_from_environment(self, mock_env_manager: None) -> None:
        """Test the default manager is configured from MULTICACHE_* variables."""
        manager = create_cache_manager()
        assert isinstance(manager, CacheManager)
        assert manager.max_total_entries == 50
        assert manager.sweep_window == 5.0

        cache = manager.builder().build("smoke")
        cache["k"] = "v"
        assert cache["k"] == "v"

    def test_create_with_explicit_config(self) -> None:
        """Test an explicit ManagerConfig wins over the environment."""
        manager = create_cache_manager(ManagerConfig(max_total_entries=3), name="explicit")
        assert manager.max_total_entries == 3
        assert list_cache_managers() == ["explicit"]

    def test_same_name_returns_same_instance(self) -> None:
        """Test managers are reused by name."""
        first = create_cache_manager(ManagerConfig(), name="shared")
        second = create_cache_manager(ManagerConfig(max_total_entries=9), name="shared")
        assert first is second
        assert get_cache_manager("shared") is first
        assert second.max_total_entries == 0

    def test_named_managers_are_independent(self) -> None:
        """Test two managers do not share caches or capacity."""
        a = create_cache_manager(ManagerConfig(max_total_entries=1), name="a")
        b = create_cache_manager(ManagerConfig(), name="b")
        a.make_cache("c").put_all({1: 1, 2: 2})
        b.make_cache("c").put_all({1: 1, 2: 2})

        a.expire()
        b.expire()
        assert a.size() == 1
        assert b.size() == 2
        assert sorted(list_cache_managers()) == ["a", "b"]

    def test_get_creates_missing(self, mock_env_manager: None) -> None:
        """Test get_cache_manager creates an unknown manager from the environment."""
        manager = get_cache_manager("lazy")
        assert manager.max_total_entries == 50
        assert "lazy" in list_cache_managers()

    def test_invalid_config_raises_configuration_error(self) -> None:
        """Test manager construction errors surface as ConfigurationError."""
        config = ManagerConfig()
        with patch.object(CacheManager, "from_config", side_effect=ValidationError("bad", {"field": "x"})):
            with pytest.raises(ConfigurationError) as exc_info:
                create_cache_manager(config, name="broken")
        assert exc_info.value.details["manager_name"] == "broken"
        assert "broken" not in list_cache_managers()

    def test_close_all_removes_caches(self) -> None:
        """Test closing managers tears down their caches."""
        manager = create_cache_manager(ManagerConfig(), name="closing")
        cache = manager.make_cache("c")
        cache.put("k", "v")

        close_all_cache_managers()
        assert cache.is_active is False
        assert list_cache_managers() == []

    def test_close_all_continues_after_error(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test one failing manager does not stop the others closing."""
        bad = create_cache_manager(ManagerConfig(), name="bad")
        good = create_cache_manager(ManagerConfig(), name="good")
        cache = good.make_cache("c")

        with patch.object(bad, "close", side_effect=RuntimeError("boom")):
            with caplog.at_level(logging.ERROR, logger="multicache.cache.factory"):
                close_all_cache_managers()

        assert "Error closing cache manager 'bad'" in caplog.text
        assert cache.is_active is False
        assert list_cache_managers() == []

    def test_reset_does_not_close(self) -> None:
        """Test reset forgets managers without tearing them down."""
        manager = create_cache_manager(ManagerConfig(), name="kept")
        cache = manager.make_cache("c")
        reset_cache_factory()
        assert list_cache_managers() == []
        assert cache.is_active is True
        manager.close()

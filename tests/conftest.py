"""
multicache - Test Configuration and Shared Fixtures

Provides pytest configuration and shared fixtures for unit and integration tests.
"""

import logging
import os
from collections.abc import Generator

import pytest

from multicache.cache.factory import reset_cache_factory as _reset_factory
from multicache.cache.manager import CacheManager

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "DEBUG"


class FakeClock:
    """Deterministic monotonic clock; time only moves when advanced."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    """A fake clock starting at t=1000s."""
    return FakeClock()


@pytest.fixture
def manager(clock: FakeClock) -> Generator[CacheManager, None, None]:
    """An unbounded manager driven by the fake clock."""
    mgr = CacheManager(clock=clock)
    yield mgr
    mgr.close()


@pytest.fixture
def mock_env_manager(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set environment variables for the default cache manager."""
    monkeypatch.setenv("MULTICACHE_MAX_TOTAL_ENTRIES", "50")
    monkeypatch.setenv("MULTICACHE_SWEEP_WINDOW_SECONDS", "5")
    monkeypatch.setenv("MULTICACHE_RELEASE_SOFT_ON_GC", "false")


class Resource:
    """Weak-referenceable value with a close() hook for disposer tests."""

    def __init__(self, name: str):
        self.name = name
        self.closed = 0

    def close(self) -> None:
        self.closed += 1

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Resource) and other.name == self.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __repr__(self) -> str:
        return f"Resource({self.name!r})"


@pytest.fixture
def resource_factory():  # type: ignore[no-untyped-def]
    """Build named Resource values."""
    return Resource


@pytest.fixture(autouse=True)
def reset_cache_factory() -> Generator[None, None, None]:
    """Reset the manager factory, loaded config and package logger after each test to prevent state leakage."""
    package_logger = logging.getLogger("multicache")
    handlers, level = list(package_logger.handlers), package_logger.level
    yield
    package_logger.handlers[:] = handlers
    package_logger.setLevel(level)
    from multicache.config import loader

    _reset_factory()
    loader._config_instance = None

"""
multicache - Cache Manager Factory

Optional registry of named CacheManager instances built from configuration.
Managers are ordinary objects: code that prefers explicit wiring can just
construct ``CacheManager(...)`` and never touch this module.

Examples:
    from multicache.cache.factory import create_cache_manager, get_cache_manager

    # Uses env-configured settings (MULTICACHE_* variables)
    manager = create_cache_manager()

    # Or explicitly supply a ManagerConfig (e.g., for tests)
    from multicache.config import ManagerConfig
    manager = create_cache_manager(ManagerConfig(max_total_entries=100), name="test")
"""

from __future__ import annotations

import logging

from ..config import ManagerConfig, get_config
from ..errors import ConfigurationError, MultiCacheError
from ..observability import configure_logging_from_config
from .manager import CacheManager

logger = logging.getLogger(__name__)

# Global manager instances registry
_manager_instances: dict[str, CacheManager] = {}


def create_cache_manager(
    config: ManagerConfig | None = None,
    name: str = "default",
) -> CacheManager:
    """
    Create a cache manager based on configuration.

    Args:
        config: Manager configuration (uses global config if not provided, which
            also applies its logging settings)
        name: Manager instance name (for multiple managers)

    Returns:
        The new manager, or the existing one registered under ``name``

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    if name in _manager_instances:
        logger.debug("Returning existing cache manager: %s", name)
        return _manager_instances[name]

    if config is None:
        settings = get_config()
        configure_logging_from_config(settings)
        config = settings.manager

    logger.info(
        "Creating cache manager '%s'",
        name,
        extra={
            "manager_name": name,
            "max_total_entries": config.max_total_entries,
            "sweep_window_seconds": config.sweep_window_seconds,
        },
    )

    try:
        manager = CacheManager.from_config(config)
    except MultiCacheError as e:
        raise ConfigurationError(
            f"Failed to create cache manager '{name}': {e.message}",
            details={"manager_name": name, **e.details},
        ) from e

    _manager_instances[name] = manager
    return manager


def get_cache_manager(name: str = "default") -> CacheManager:
    """
    Get an existing cache manager by name.

    If the instance doesn't exist, it is created from the global configuration.
    """
    if name not in _manager_instances:
        logger.debug("Cache manager '%s' not found, creating new instance", name)
        return create_cache_manager(name=name)

    return _manager_instances[name]


def close_all_cache_managers() -> None:
    """
    Close every registered manager, removing all of their caches, and forget
    them. Errors are logged and do not stop the remaining managers closing.
    """
    if not _manager_instances:
        logger.debug("No cache managers to close")
        return

    logger.info("Closing %d cache manager(s)...", len(_manager_instances))

    for name, manager in list(_manager_instances.items()):
        try:
            manager.close()
            logger.info("Closed cache manager: %s", name)
        except Exception as e:
            logger.error(
                "Error closing cache manager '%s': %s",
                name,
                e,
                extra={"manager_name": name, "error": str(e)},
                exc_info=True,
            )

    _manager_instances.clear()


def reset_cache_factory() -> None:
    """
    Forget all registered managers without closing them.

    Warning: Only use this in testing contexts.
    """
    count = len(_manager_instances)
    _manager_instances.clear()
    logger.debug("Reset cache factory, cleared %d manager reference(s)", count)


def list_cache_managers() -> list[str]:
    """List all registered manager names."""
    return list(_manager_instances.keys())

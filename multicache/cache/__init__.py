"""
multicache - Cache Module

Named TTL caches sharing one manager, expiry index and capacity bound.

Usage:
    from multicache.cache import CacheManager

    manager = CacheManager(max_total_entries=1000)
    cache = manager.builder().ttl(30).refresh().build("users")
    cache["alice"] = profile
"""

from .builder import CacheBuilder
from .factory import (
    close_all_cache_managers,
    create_cache_manager,
    get_cache_manager,
    list_cache_managers,
    reset_cache_factory,
)
from .interface import CacheInterface
from .manager import CacheManager
from .references import ReferenceType
from .store import ManagedCache

__all__ = [
    # Core
    "CacheManager",
    "ManagedCache",
    "CacheBuilder",
    "ReferenceType",
    # Factory functions
    "create_cache_manager",
    "get_cache_manager",
    "list_cache_managers",
    "close_all_cache_managers",
    "reset_cache_factory",
    # Interface
    "CacheInterface",
]

"""
multicache - In-process Multi-Cache Manager

Named, thread-safe TTL caches with refresh-on-access, per-cache and global
capacity bounds, and strong, soft or weak value references.
"""

__version__ = "1.0.0"

from .cache import CacheBuilder, CacheManager, ManagedCache, ReferenceType
from .errors import (
    CacheError,
    CacheExistsError,
    ConfigurationError,
    MultiCacheError,
    UnknownCacheError,
    ValidationError,
)

__all__ = [
    "CacheManager",
    "ManagedCache",
    "CacheBuilder",
    "ReferenceType",
    "MultiCacheError",
    "ConfigurationError",
    "ValidationError",
    "CacheError",
    "CacheExistsError",
    "UnknownCacheError",
]

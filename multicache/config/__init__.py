"""
multicache - Configuration Module

Provides typed configuration loading and validation.
"""

from .loader import get_config, load_config, reload_config
from .schemas import (
    DEFAULT_SWEEP_WINDOW_SECONDS,
    DEFAULT_TTL_SECONDS,
    MIN_TTL_SECONDS,
    CacheConfig,
    Environment,
    LogLevel,
    ManagerConfig,
    MultiCacheConfig,
    ReferenceType,
)

__all__ = [
    # Loader functions
    "load_config",
    "get_config",
    "reload_config",
    # Main config
    "MultiCacheConfig",
    # Enums
    "Environment",
    "LogLevel",
    "ReferenceType",
    # Config sections
    "CacheConfig",
    "ManagerConfig",
    # Limits and defaults
    "MIN_TTL_SECONDS",
    "DEFAULT_TTL_SECONDS",
    "DEFAULT_SWEEP_WINDOW_SECONDS",
]

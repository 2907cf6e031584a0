"""
multicache - Configuration Schemas

Defines typed configuration models using Pydantic for validation and type safety.

- CacheConfig: per-cache settings consumed by CacheBuilder / CacheManager.make_cache
- ManagerConfig: process-wide settings for a CacheManager
- MultiCacheConfig: root configuration loaded from the environment
"""

from collections.abc import Callable
from datetime import timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Smallest TTL a cache accepts (one millisecond)
MIN_TTL_SECONDS = 0.001

DEFAULT_TTL_SECONDS = 10.0
DEFAULT_SWEEP_WINDOW_SECONDS = 30.0


class Environment(str, Enum):
    """Runtime environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ReferenceType(str, Enum):
    """How a cache holds on to its values."""

    STRONG = "strong"
    SOFT = "soft"  # Released on memory pressure
    WEAK = "weak"  # Released once nothing else references the value


class CacheConfig(BaseModel):
    """Configuration of a single managed cache."""

    ttl_seconds: float = Field(
        default=DEFAULT_TTL_SECONDS,
        ge=MIN_TTL_SECONDS,
        description="Default time-to-live of entries, in seconds (at least 1ms)",
    )
    refresh: bool = Field(default=False, description="Accessing an entry pushes its expiry out by its TTL")
    max_entries: int = Field(default=0, ge=0, description="Max entries held by this cache (0 = unbounded)")
    reference_type: ReferenceType = Field(default=ReferenceType.STRONG, description="How values are referenced")
    value_disposer: Callable[[Any], Any] | None = Field(
        default=None,
        description="Called once with each value the cache discards (strong caches only)",
    )

    model_config = ConfigDict(arbitrary_types_allowed=True, validate_assignment=True)

    @field_validator("ttl_seconds", mode="before")
    @classmethod
    def coerce_timedelta(cls, v: Any) -> Any:
        """Accept a timedelta wherever seconds are expected."""
        if isinstance(v, timedelta):
            return v.total_seconds()
        return v

    @model_validator(mode="after")
    def validate_disposer(self) -> "CacheConfig":
        """A disposer only makes sense when the cache owns its values."""
        if self.value_disposer is not None and self.reference_type != ReferenceType.STRONG:
            raise ValueError("value_disposer can only be used with strongly referenced caches")
        return self


class ManagerConfig(BaseModel):
    """Configuration of a CacheManager."""

    max_total_entries: int = Field(default=0, ge=0, description="Max entries across all caches (0 = unbounded)")
    sweep_window_seconds: float = Field(
        default=DEFAULT_SWEEP_WINDOW_SECONDS,
        gt=0,
        description="Minimum interval between automatic expiration sweeps",
    )
    release_soft_on_gc: bool = Field(
        default=False,
        description="Treat a full garbage collection as memory pressure and release soft references",
    )


class MultiCacheConfig(BaseModel):
    """Root configuration for multicache."""

    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Runtime environment")
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    json_logs: bool = Field(default=False, description="Emit structured JSON log lines")

    manager: ManagerConfig = Field(default_factory=ManagerConfig)

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True)

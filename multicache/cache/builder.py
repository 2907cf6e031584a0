"""
multicache - Cache Builder

Fluent construction of managed caches:

    cache = manager.builder().ttl(timedelta(minutes=5)).refresh().max(1000).build("sessions")

Defaults: strong references, 10 second TTL, no refresh, unbounded, no disposer.
A TTL change only applies to values put after the change.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import timedelta
from typing import TYPE_CHECKING, Any

import pydantic

from ..config.schemas import DEFAULT_TTL_SECONDS, CacheConfig, ReferenceType
from ..errors import ValidationError
from .store import ManagedCache, validate_max_entries, validate_ttl

if TYPE_CHECKING:
    from .manager import CacheManager


def cache_name(name: str | type) -> str:
    """Resolve a cache name; a class is named by its dotted module path."""
    if isinstance(name, type):
        return f"{name.__module__}.{name.__qualname__}"
    return name


class CacheBuilder:
    """Builds caches with chosen settings for a CacheManager (see CacheManager.builder)."""

    def __init__(self, manager: CacheManager):
        self._manager = manager
        self.reset()

    def reset(self) -> CacheBuilder:
        """Restore the default settings, including dropping any disposer."""
        self._ttl = DEFAULT_TTL_SECONDS
        self._refresh = False
        self._max_entries = 0
        self._reference_type = ReferenceType.STRONG
        self._value_disposer: Callable[[Any], Any] | None = None
        return self

    def ttl(self, ttl: float | int | timedelta) -> CacheBuilder:
        """
        Default time-to-live for values put into the cache.

        Raises:
            ValidationError: If shorter than one millisecond
        """
        self._ttl = validate_ttl(ttl)
        return self

    def refresh(self, refresh: bool = True) -> CacheBuilder:
        """Push a value's expiry out by its TTL each time it is accessed."""
        self._refresh = bool(refresh)
        return self

    def norefresh(self) -> CacheBuilder:
        return self.refresh(False)

    def max(self, max_entries: int) -> CacheBuilder:
        """
        Max entries the cache holds (0 for unlimited). The cache can go over
        between expiration sweeps.

        Raises:
            ValidationError: If negative
        """
        self._max_entries = validate_max_entries(max_entries)
        return self

    def ref(self, reference_type: ReferenceType | str) -> CacheBuilder:
        try:
            self._reference_type = ReferenceType(reference_type)
        except ValueError as e:
            raise ValidationError(
                f"Unknown reference type: {reference_type}",
                details={"reference_type": str(reference_type)},
            ) from e
        return self

    def strong(self) -> CacheBuilder:
        return self.ref(ReferenceType.STRONG)

    def soft(self) -> CacheBuilder:
        return self.ref(ReferenceType.SOFT)

    def weak(self) -> CacheBuilder:
        return self.ref(ReferenceType.WEAK)

    def disposer(self, value_disposer: Callable[[Any], Any]) -> CacheBuilder:
        """Called once for each value the cache expires (strong caches only)."""
        if not callable(value_disposer):
            raise ValidationError("Value disposer must be callable.")
        self._value_disposer = value_disposer
        return self

    def nodisposer(self) -> CacheBuilder:
        self._value_disposer = None
        return self

    def config(self) -> CacheConfig:
        """
        Validated configuration for the current settings.

        Raises:
            ValidationError: If the combination of settings is invalid
        """
        try:
            return CacheConfig(
                ttl_seconds=self._ttl,
                refresh=self._refresh,
                max_entries=self._max_entries,
                reference_type=self._reference_type,
                value_disposer=self._value_disposer,
            )
        except pydantic.ValidationError as e:
            raise ValidationError(
                "Invalid cache configuration",
                details={"errors": [err["msg"] for err in e.errors()]},
            ) from e

    def build(self, name: str | type) -> ManagedCache:
        """
        Build a cache with the current settings.

        Raises:
            CacheExistsError: If a cache of that name already exists
        """
        return self._manager.create_cache(cache_name(name), self.config(), force_new=True)

    def build_or_get(self, name: str | type) -> ManagedCache:
        """
        Build a cache with the current settings, or return the existing cache
        of that name (whose settings are left as they are).
        """
        return self._manager.create_cache(cache_name(name), self.config(), force_new=False)

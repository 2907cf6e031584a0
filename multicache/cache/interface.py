"""
multicache - Cache Interface

Defines the abstract interface every managed cache implements. A cache is a
thread-safe MutableMapping whose writes take an optional TTL override.
"""

from abc import abstractmethod
from collections.abc import Iterable, Mapping, MutableMapping
from datetime import timedelta
from typing import Any

# TTLs are seconds (int/float) or a timedelta; None means the cache default
TTL = float | int | timedelta | None

_MISSING = object()


class CacheInterface(MutableMapping[Any, Any]):
    """
    Abstract base class for managed caches.

    The mapping dunders are expressed in terms of the abstract operations, so
    an implementation only has to provide the cache-level methods below.
    """

    @abstractmethod
    def get(self, key: Any, default: Any = None) -> Any:
        """
        Retrieve a value from the cache.

        Args:
            key: Cache key
            default: Returned when the key is absent, expired or reclaimed

        Returns:
            Cached value if found and live, ``default`` otherwise
        """

    @abstractmethod
    def put(self, key: Any, value: Any, ttl: TTL = None) -> Any | None:
        """
        Store a value, replacing any existing mapping.

        Args:
            key: Cache key (not None)
            value: Value to cache (not None)
            ttl: Time-to-live override (None = cache default)

        Returns:
            The previous live value, or None
        """

    @abstractmethod
    def put_if_absent(self, key: Any, value: Any, ttl: TTL = None) -> Any | None:
        """
        Store a value only if the key has no live mapping.

        Returns:
            The existing live value (nothing stored), or None (value stored)
        """

    @abstractmethod
    def replace(self, key: Any, value: Any, ttl: TTL = None) -> Any | None:
        """
        Store a value only if the key already has a live mapping.

        Returns:
            The replaced value, or None if nothing was stored
        """

    @abstractmethod
    def replace_if(self, key: Any, old_value: Any, new_value: Any, ttl: TTL = None) -> bool:
        """
        Store ``new_value`` only if the live value equals ``old_value``.

        Returns:
            True if the value was replaced
        """

    @abstractmethod
    def put_all(self, items: Mapping[Any, Any] | Iterable[tuple[Any, Any]], ttl: TTL = None) -> None:
        """
        Store every item as one atomic batch.

        Args:
            items: Mapping or iterable of (key, value) pairs
            ttl: Time-to-live override applied to all items
        """

    @abstractmethod
    def remove(self, key: Any) -> Any | None:
        """
        Remove a key.

        Returns:
            The removed live value, or None if there was none
        """

    @abstractmethod
    def remove_if(self, key: Any, value: Any) -> bool:
        """
        Remove a key only if its live value equals ``value``.

        Returns:
            True if a matching value was removed
        """

    @abstractmethod
    def clear(self) -> None:
        """Expire every entry in the cache."""

    @abstractmethod
    def get_stats(self) -> dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dictionary with cache statistics (hits, misses, size, etc.)
        """

    @abstractmethod
    def close(self) -> None:
        """Remove the cache from its manager; it then behaves as an empty, inert map."""

    # Mapping protocol

    def __getitem__(self, key: Any) -> Any:
        value = self.get(key, _MISSING)
        if value is _MISSING:
            raise KeyError(key)
        return value

    def __setitem__(self, key: Any, value: Any) -> None:
        self.put(key, value)

    def __delitem__(self, key: Any) -> None:
        if self.remove(key) is None:
            raise KeyError(key)

    def pop(self, key: Any, default: Any = _MISSING) -> Any:
        value = self.remove(key)
        if value is None:
            if default is _MISSING:
                raise KeyError(key)
            return default
        return value

    def setdefault(self, key: Any, default: Any = None) -> Any:
        existing = self.put_if_absent(key, default)
        return default if existing is None else existing

    def update(self, other: Any = (), /, **kwargs: Any) -> None:
        items = dict(other)
        items.update(kwargs)
        self.put_all(items)

    def get_many(self, keys: Iterable[Any]) -> dict[Any, Any]:
        """
        Retrieve multiple values.

        Returns:
            Dictionary mapping keys to values (missing keys are omitted)
        """
        result = {}
        for key in keys:
            value = self.get(key)
            if value is not None:
                result[key] = value
        return result

    def remove_many(self, keys: Iterable[Any]) -> int:
        """
        Remove multiple keys.

        Returns:
            Number of keys that held a live value
        """
        count = 0
        for key in keys:
            if self.remove(key) is not None:
                count += 1
        return count

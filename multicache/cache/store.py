"""
multicache - Managed Cache

A named, thread-safe, TTL-bound map registered with a CacheManager.

Features:
- Per-call TTL overrides on every write
- Optional refresh: reads push an entry's expiry out by its TTL
- Strong, soft or weak value references
- Optional disposer, called once for each value the cache discards
- Lock-free reads; writes serialize on the manager's entry lock

Once removed from its manager a cache becomes a tombstone: writes are
ignored, reads find nothing and iteration is empty.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, ItemsView, Iterable, Iterator, KeysView, Mapping, ValuesView
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from ..config.schemas import MIN_TTL_SECONDS, ReferenceType
from ..errors import CacheError, ValidationError
from .entry import CacheEntry
from .interface import TTL, CacheInterface
from .references import make_holder

if TYPE_CHECKING:
    from .manager import CacheManager

logger = logging.getLogger(__name__)


def validate_ttl(ttl: float | int | timedelta) -> float:
    """
    Normalize a TTL to seconds.

    Raises:
        ValidationError: If the TTL is shorter than one millisecond
    """
    seconds = ttl.total_seconds() if isinstance(ttl, timedelta) else ttl
    if isinstance(seconds, bool) or not isinstance(seconds, int | float):
        raise ValidationError(
            f"TTL must be a number of seconds or a timedelta, got {type(ttl).__name__}",
            details={"ttl": repr(ttl)},
        )
    if seconds < MIN_TTL_SECONDS:
        raise ValidationError("TTL must be at least one millisecond.", details={"ttl": seconds})
    return float(seconds)


def validate_max_entries(max_entries: int) -> int:
    """
    Raises:
        ValidationError: If max_entries is negative
    """
    if isinstance(max_entries, bool) or not isinstance(max_entries, int):
        raise ValidationError("Max Entries must be an integer.", details={"max_entries": repr(max_entries)})
    if max_entries < 0:
        raise ValidationError("Max Entries must be zero or positive number.", details={"max_entries": max_entries})
    return max_entries


def _check_key(key: Any) -> None:
    if key is None:
        raise ValidationError("Cache keys cannot be None")


def _check_value(value: Any) -> None:
    if value is None:
        raise ValidationError("Cache values cannot be None; remove the key instead")


class _Active:
    """State of a cache that is still registered with its manager."""

    __slots__ = ("manager", "entries")

    def __init__(self, manager: CacheManager):
        self.manager = manager
        self.entries: dict[Any, CacheEntry] = {}


class ManagedCache(CacheInterface):
    """
    Thread-safe TTL map owned by a CacheManager.

    Created through ``CacheManager.builder()`` or ``CacheManager.make_cache``.
    """

    def __init__(
        self,
        manager: CacheManager,
        name: str,
        ttl: float | int | timedelta,
        refresh: bool = False,
        max_entries: int = 0,
        reference_type: ReferenceType = ReferenceType.STRONG,
        value_disposer: Callable[[Any], Any] | None = None,
    ):
        try:
            reference_type = ReferenceType(reference_type)
        except ValueError as e:
            raise ValidationError(
                f"Unknown reference type: {reference_type}",
                details={"cache_name": name, "reference_type": str(reference_type)},
            ) from e
        if value_disposer is not None and reference_type != ReferenceType.STRONG:
            raise ValidationError(
                "Can only use a value disposer with strongly referenced caches.",
                details={"cache_name": name, "reference_type": reference_type.value},
            )

        self._active: _Active | None = _Active(manager)
        self._manager = manager
        self._name = name
        self._ttl = validate_ttl(ttl)
        self._refresh = bool(refresh)
        self._max_entries = validate_max_entries(max_entries)
        self._reference_type = reference_type
        self._value_disposer = value_disposer

        # Stats (read counters are best-effort under contention)
        self._hits = 0
        self._misses = 0
        self._expirations = 0
        self._evictions = 0

    # Configuration

    @property
    def name(self) -> str:
        return self._name

    @property
    def manager(self) -> CacheManager:
        return self._manager

    @property
    def ttl(self) -> float:
        """Default TTL in seconds."""
        return self._ttl

    @property
    def refresh(self) -> bool:
        return self._refresh

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def reference_type(self) -> ReferenceType:
        return self._reference_type

    @property
    def value_disposer(self) -> Callable[[Any], Any] | None:
        return self._value_disposer

    @property
    def is_active(self) -> bool:
        """False once the cache has been removed from its manager."""
        return self._active is not None

    def set_ttl(self, ttl: float | int | timedelta) -> None:
        """Change the default TTL for future writes. Existing entries keep theirs."""
        self._ttl = validate_ttl(ttl)

    def set_max_entries(self, max_entries: int) -> None:
        """Change the capacity bound (0 = unbounded), applied from the next sweep."""
        self._max_entries = validate_max_entries(max_entries)

    # Reads

    def get(self, key: Any, default: Any = None) -> Any:
        act = self._active
        if act is None or key is None:
            return default
        entry = act.entries.get(key)
        if entry is None:
            self._misses += 1
            return default
        now = act.manager.clock()
        value = entry.get_value()
        if value is None or entry.curr_expires <= now:
            self._expire_stale(act, entry)
            self._misses += 1
            return default
        entry.touch(now)
        self._hits += 1
        return value

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        act = self._active
        return len(act.entries) if act is not None else 0

    def size(self) -> int:
        return len(self)

    def is_empty(self) -> bool:
        return len(self) == 0

    def contains_value(self, value: Any) -> bool:
        """True if any live entry holds a value equal to ``value``."""
        _check_value(value)
        act = self._active
        if act is None:
            return False
        now = act.manager.clock()
        for entry in list(act.entries.values()):
            if entry.curr_expires > now and entry.get_value() == value:
                return True
        return False

    def __iter__(self) -> Iterator[Any]:
        return CacheIterator(self, _project_key)

    def keys(self) -> CacheKeysView:  # type: ignore[override]
        return CacheKeysView(self)

    def values(self) -> CacheValuesView:  # type: ignore[override]
        return CacheValuesView(self)

    def items(self) -> CacheItemsView:  # type: ignore[override]
        return CacheItemsView(self)

    # Writes

    def put(self, key: Any, value: Any, ttl: TTL = None) -> Any | None:
        act = self._active
        if act is None:
            return None
        ttl = self._resolve_ttl(ttl)
        _check_key(key)
        _check_value(value)
        manager = act.manager
        with manager.entries_locked(f"{self._name}.put"):
            if self._active is not act:
                return None
            now = manager.clock()
            entry = self._new_entry(key, value, now, ttl)
            prev = self._link(act, entry, now)
            manager.trace("%s: Put %r", self._name, key)
        manager.sweep_if_due()
        return prev

    def put_if_absent(self, key: Any, value: Any, ttl: TTL = None) -> Any | None:
        act = self._active
        if act is None:
            return None
        ttl = self._resolve_ttl(ttl)
        _check_key(key)
        _check_value(value)
        manager = act.manager
        with manager.entries_locked(f"{self._name}.put_if_absent"):
            if self._active is not act:
                return None
            now = manager.clock()
            existing = act.entries.get(key)
            if existing is not None:
                current = existing.get_value()
                if current is not None and existing.curr_expires > now:
                    return current
            entry = self._new_entry(key, value, now, ttl)
            self._link(act, entry, now)
            manager.trace("%s: PutIfAbsent %r", self._name, key)
        manager.sweep_if_due()
        return None

    def replace(self, key: Any, value: Any, ttl: TTL = None) -> Any | None:
        act = self._active
        if act is None:
            return None
        ttl = self._resolve_ttl(ttl)
        _check_key(key)
        _check_value(value)
        manager = act.manager
        with manager.entries_locked(f"{self._name}.replace"):
            if self._active is not act:
                return None
            now = manager.clock()
            existing = act.entries.get(key)
            if existing is None:
                return None
            if not existing.is_live(now):
                self._unlink(act, existing, now)
                return None
            entry = self._new_entry(key, value, now, ttl)
            prev = self._link(act, entry, now)
            manager.trace("%s: Replace %r", self._name, key)
        manager.sweep_if_due()
        return prev

    def replace_if(self, key: Any, old_value: Any, new_value: Any, ttl: TTL = None) -> bool:
        act = self._active
        if act is None:
            return False
        ttl = self._resolve_ttl(ttl)
        _check_key(key)
        _check_value(old_value)
        _check_value(new_value)
        manager = act.manager
        with manager.entries_locked(f"{self._name}.replace_if"):
            if self._active is not act:
                return False
            now = manager.clock()
            existing = act.entries.get(key)
            if existing is None:
                return False
            current = existing.get_value()
            if current is None or existing.curr_expires <= now:
                self._unlink(act, existing, now)
                return False
            if current != old_value:
                return False
            entry = self._new_entry(key, new_value, now, ttl)
            self._link(act, entry, now)
            manager.trace("%s: ReplaceIf %r", self._name, key)
        manager.sweep_if_due()
        return True

    def put_all(self, items: Mapping[Any, Any] | Iterable[tuple[Any, Any]], ttl: TTL = None) -> None:
        act = self._active
        if act is None:
            return
        ttl = self._resolve_ttl(ttl)
        pairs = list(items.items()) if isinstance(items, Mapping) else list(items)
        for key, value in pairs:
            _check_key(key)
            _check_value(value)
            # Unhashable keys fail here, before anything is stored
            hash(key)
        manager = act.manager
        with manager.entries_locked(f"{self._name}.put_all"):
            if self._active is not act:
                return
            now = manager.clock()
            # Build every entry first so a rejected value stores nothing
            entries = [self._new_entry(key, value, now, ttl) for key, value in pairs]
            for entry in entries:
                self._link(act, entry, now)
            manager.trace("%s: PutAll %d entries", self._name, len(entries))
        manager.sweep_if_due()

    def remove(self, key: Any) -> Any | None:
        act = self._active
        if act is None or key is None:
            return None
        manager = act.manager
        with manager.entries_locked(f"{self._name}.remove"):
            existing = act.entries.get(key)
            if existing is None:
                return None
            prev = self._unlink(act, existing, manager.clock())
            manager.trace("%s: Remove %r", self._name, key)
        manager.sweep_if_due()
        return prev

    def remove_if(self, key: Any, value: Any) -> bool:
        act = self._active
        if act is None or key is None or value is None:
            return False
        manager = act.manager
        with manager.entries_locked(f"{self._name}.remove_if"):
            existing = act.entries.get(key)
            if existing is None:
                return False
            now = manager.clock()
            current = existing.get_value()
            if current is not None and existing.curr_expires > now and current != value:
                return False
            removed = self._unlink(act, existing, now)
            manager.trace("%s: RemoveIf %r", self._name, key)
        manager.sweep_if_due()
        return removed is not None

    def clear(self) -> None:
        self._clear(self._active)

    def close(self) -> None:
        act = self._active
        if act is not None:
            act.manager.remove_cache(self._name, expected=self)

    # Stats / diagnostics

    def get_stats(self) -> dict[str, Any]:
        total_requests = self._hits + self._misses
        hit_rate = (self._hits / total_requests * 100) if total_requests > 0 else 0.0
        return {
            "name": self._name,
            "active": self.is_active,
            "size": len(self),
            "max_entries": self._max_entries,
            "ttl_seconds": self._ttl,
            "refresh": self._refresh,
            "reference_type": self._reference_type.value,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(hit_rate, 2),
            "expirations": self._expirations,
            "evictions": self._evictions,
        }

    def __str__(self) -> str:
        size = len(self)
        return f"[{self._name}, {size} {'entry' if size == 1 else 'entries'}]"

    def __repr__(self) -> str:
        return (
            f"ManagedCache(name={self._name!r}, ttl={self._ttl}, refresh={self._refresh}, "
            f"max_entries={self._max_entries}, reference_type={self._reference_type.value})"
        )

    # Internals (callers hold the entry lock unless noted)

    def _resolve_ttl(self, ttl: TTL) -> float:
        return self._ttl if ttl is None else validate_ttl(ttl)

    def _new_entry(self, key: Any, value: Any, now: float, ttl: float) -> CacheEntry:
        return CacheEntry(self, key, make_holder(self._reference_type, value), now, ttl)

    def _link(self, act: _Active, entry: CacheEntry, now: float) -> Any | None:
        """Map and index ``entry``, unlinking whatever held its key before."""
        existing = act.entries.get(entry.key)
        prev = self._unlink(act, existing, now) if existing is not None else None
        act.entries[entry.key] = entry
        act.manager.index.add(entry)
        return prev

    def _unlink(self, act: _Active, entry: CacheEntry, now: float) -> Any | None:
        """
        Drop ``entry`` from the map and the index.

        A live value is handed back to the caller (no disposal); a stale
        entry counts as expired and its disposer runs.
        """
        if act.entries.get(entry.key) is entry:
            del act.entries[entry.key]
        act.manager.index.discard(entry)
        value = entry.get_value()
        if value is not None and entry.curr_expires > now:
            # A lock-free reader may have expired it since the check
            return value if entry.discard() else None
        if entry.expire():
            self._expirations += 1
        return None

    def _drop(self, entry: CacheEntry) -> None:
        """Remove ``entry`` from the map if it is still the mapping for its key."""
        act = self._active
        if act is not None and act.entries.get(entry.key) is entry:
            del act.entries[entry.key]

    def _note_expired(self, evicted: bool) -> None:
        if evicted:
            self._evictions += 1
        else:
            self._expirations += 1

    def _expire_stale(self, act: _Active, entry: CacheEntry) -> None:
        """Lock-free path: expire now, unlink if the entry lock is free."""
        if entry.expire():
            self._expirations += 1
        act.manager.try_unlink(entry)

    def _clear(self, act: _Active | None) -> None:
        if act is None:
            return
        manager = act.manager
        with manager.entries_locked(f"{self._name}.clear"):
            entries = list(act.entries.values())
            act.entries.clear()
            manager.index.discard_all(entries)
            for entry in entries:
                if entry.expire():
                    self._expirations += 1
            manager.trace("Cleared all entries in cache %s.", self._name)

    def _removed(self) -> None:
        """Called by the manager, under the entry lock, when unregistered."""
        act = self._active
        self._active = None
        self._clear(act)


def _project_key(entry: CacheEntry, value: Any) -> Any:
    return entry.key


def _project_value(entry: CacheEntry, value: Any) -> Any:
    return value


def _project_item(entry: CacheEntry, value: Any) -> tuple[Any, Any]:
    return (entry.key, value)


class CacheIterator(Iterator[Any]):
    """
    Iterator over a snapshot of a cache's entries.

    Entries that are expired or reclaimed when reached are skipped; yielded
    entries get the refresh side effect. ``remove()`` removes the key of the
    last yielded item from the cache.
    """

    def __init__(self, cache: ManagedCache, project: Callable[[CacheEntry, Any], Any]):
        act = cache._active
        self._cache = cache
        self._project = project
        self._clock = act.manager.clock if act is not None else None
        self._entries: Iterator[CacheEntry] = iter(list(act.entries.values()) if act is not None else ())
        self._last: CacheEntry | None = None

    def __iter__(self) -> CacheIterator:
        return self

    def __next__(self) -> Any:
        for entry in self._entries:
            now = self._clock()  # type: ignore[misc]
            value = entry.get_value()
            if value is not None and entry.curr_expires > now:
                entry.touch(now)
                self._last = entry
                return self._project(entry, value)
        self._last = None
        raise StopIteration

    def remove(self) -> None:
        entry = self._last
        self._last = None
        if entry is None:
            raise CacheError("remove() called without a current item")
        self._cache.remove(entry.key)


class CacheKeysView(KeysView[Any]):
    _mapping: ManagedCache

    def __iter__(self) -> CacheIterator:
        return CacheIterator(self._mapping, _project_key)


class CacheValuesView(ValuesView[Any]):
    _mapping: ManagedCache

    def __iter__(self) -> CacheIterator:
        return CacheIterator(self._mapping, _project_value)

    def __contains__(self, value: object) -> bool:
        return value is not None and self._mapping.contains_value(value)


class CacheItemsView(ItemsView[Any, Any]):
    _mapping: ManagedCache

    def __iter__(self) -> CacheIterator:
        return CacheIterator(self._mapping, _project_item)

"""
multicache - Cache Manager

Owns a set of named ManagedCache instances, a single expiry index of every
entry across them, and the sweep that expires and evicts entries.

Locks:
- registry lock: the name -> cache map only (create/remove/list)
- entry lock: the expiry index, every cache's map and the whole sweep

When both are needed the entry lock is taken first.

Sweep phases (``expire()``):
1. Expire entries past their TTL, requeueing entries refreshed since they
   were indexed instead of expiring them.
2. For each cache over its max_entries, evict its earliest entries.
3. While the manager is over max_total_entries, evict the earliest entries.

Because refreshed entries get requeued, the entries evicted first in phases 2
and 3 are the ones accessed least recently: an approximate LRU that falls out
of the TTL refresh, not a true LRU.
"""

from __future__ import annotations

import gc
import logging
import threading
import time
import weakref
from collections.abc import Callable, Generator
from contextlib import contextmanager
from datetime import timedelta
from typing import Any

from ..config.schemas import DEFAULT_SWEEP_WINDOW_SECONDS, DEFAULT_TTL_SECONDS, CacheConfig, ManagerConfig, ReferenceType
from ..errors import CacheExistsError, UnknownCacheError, ValidationError
from .builder import CacheBuilder
from .entry import CacheEntry
from .index import ExpiryIndex
from .store import ManagedCache

logger = logging.getLogger(__name__)


def _remove_gc_callback(callback: Callable[[str, dict[str, Any]], None]) -> None:
    try:
        gc.callbacks.remove(callback)
    except ValueError:
        pass


class CacheManager:
    """
    Manages a set of thread-safe caches that expire entries after a
    time-to-live, can be bound to a maximum number of entries, and hold
    strong, soft or weak references to their values.

    Example:
        manager = CacheManager(max_total_entries=10_000)
        users = manager.builder().ttl(60).refresh().max(500).build("users")
        users["alice"] = profile
    """

    def __init__(
        self,
        max_total_entries: int = 0,
        logger: logging.Logger | None = None,
        *,
        sweep_window: float | timedelta = DEFAULT_SWEEP_WINDOW_SECONDS,
        release_soft_on_gc: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize a cache manager.

        Args:
            max_total_entries: Entries held across all caches (0 = unbounded)
            logger: Logger for detailed lock and expiry tracing (None = off)
            sweep_window: Minimum seconds between automatic sweeps
            release_soft_on_gc: Treat full garbage collections as memory pressure
            clock: Monotonic time source in seconds
        """
        self._logger = logger
        self._max_total_entries = 0
        self.max_total_entries = max_total_entries

        if isinstance(sweep_window, timedelta):
            sweep_window = sweep_window.total_seconds()
        if sweep_window <= 0:
            raise ValidationError("Sweep window must be positive.", details={"sweep_window": sweep_window})
        self._sweep_window = float(sweep_window)
        self.clock = clock

        self._caches_lock = threading.Lock()
        self._caches: dict[str, ManagedCache] = {}

        self._entries_lock = threading.RLock()
        self.index = ExpiryIndex()
        self._next_sweep = 0.0
        self._sweeps = 0
        self._sweeping = False

        self._memory_pressure = False
        self._gc_callback: Callable[[str, dict[str, Any]], None] | None = None
        if release_soft_on_gc:
            self._install_gc_callback()

    @classmethod
    def from_config(
        cls,
        config: ManagerConfig,
        logger: logging.Logger | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> CacheManager:
        """Build a manager from a validated ManagerConfig."""
        return cls(
            max_total_entries=config.max_total_entries,
            logger=logger,
            sweep_window=config.sweep_window_seconds,
            release_soft_on_gc=config.release_soft_on_gc,
            clock=clock,
        )

    # Configuration

    @property
    def logger(self) -> logging.Logger | None:
        """Logger used for detailed tracing (None for no tracing)."""
        return self._logger

    @logger.setter
    def logger(self, value: logging.Logger | None) -> None:
        self._logger = value

    @property
    def max_total_entries(self) -> int:
        """Entries held across all caches (0 for unlimited)."""
        return self._max_total_entries

    @max_total_entries.setter
    def max_total_entries(self, value: int) -> None:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(
                "Max Total Entries must be zero or positive number.",
                details={"max_total_entries": value},
            )
        self.trace("Max total entries set to %d.", value)
        self._max_total_entries = value

    @property
    def sweep_window(self) -> float:
        return self._sweep_window

    @property
    def next_sweep_deadline(self) -> float:
        return self._next_sweep

    def builder(self) -> CacheBuilder:
        """Start building a cache managed by this manager."""
        return CacheBuilder(self)

    # Registry

    def exists(self, name: str) -> bool:
        """Check if a cache with a particular name exists."""
        return name in self._caches

    def get_cache(self, name: str) -> ManagedCache:
        """
        Return a previously created cache.

        Raises:
            UnknownCacheError: If no cache has that name
        """
        cache = self._caches.get(name)
        if cache is None:
            raise UnknownCacheError(name)
        return cache

    def get_cache_names(self) -> list[str]:
        """Sorted snapshot of the managed cache names."""
        with self._caches_locked("get_cache_names"):
            return sorted(self._caches)

    def make_cache(
        self,
        name: str,
        ttl: float | timedelta = DEFAULT_TTL_SECONDS,
        refresh: bool = False,
        max_entries: int = 0,
        reference_type: ReferenceType = ReferenceType.STRONG,
        value_disposer: Callable[[Any], Any] | None = None,
        force_new: bool = False,
    ) -> ManagedCache:
        """
        Create a cache, or return the existing cache of that name.

        When the cache already exists the remaining arguments are ignored.

        Args:
            name: Cache name, unique within this manager
            ttl: Default time-to-live in seconds (at least 1ms)
            refresh: Reads push an entry's expiry out by its TTL
            max_entries: Capacity of this cache (0 for unlimited)
            reference_type: How values are referenced
            value_disposer: Called once with each value the cache discards
            force_new: The cache must not already exist

        Raises:
            CacheExistsError: If force_new is set and the cache exists
            ValidationError: If the configuration is invalid
        """
        if not isinstance(name, str) or not name:
            raise ValidationError("Cache name must be a non-empty string.", details={"name": repr(name)})

        with self._caches_locked("make_cache"):
            cache = self._caches.get(name)
            if cache is not None:
                if force_new:
                    self.trace("Cache %s already exists, so raising an error.", name)
                    raise CacheExistsError(name)
                self.trace("Cache %s already exists, so just returning it.", name)
                return cache

            cache = ManagedCache(self, name, ttl, refresh, max_entries, reference_type, value_disposer)
            self._caches[name] = cache

        logger.info(
            "Created cache '%s'",
            name,
            extra={
                "cache_name": name,
                "ttl_seconds": cache.ttl,
                "refresh": cache.refresh,
                "max_entries": cache.max_entries,
                "reference_type": cache.reference_type.value,
            },
        )
        self.trace(
            "Made cache %s with ttl %s, refresh %s, max entries %d, and ref type %s.",
            name,
            cache.ttl,
            cache.refresh,
            cache.max_entries,
            cache.reference_type.value,
        )
        return cache

    def create_cache(self, name: str, config: CacheConfig, force_new: bool = False) -> ManagedCache:
        """Create (or get) a cache from a validated CacheConfig."""
        return self.make_cache(
            name,
            ttl=config.ttl_seconds,
            refresh=config.refresh,
            max_entries=config.max_entries,
            reference_type=config.reference_type,
            value_disposer=config.value_disposer,
            force_new=force_new,
        )

    def remove_cache(self, name: str, expected: ManagedCache | None = None) -> bool:
        """
        Remove a cache. Its entries are expired and it becomes an inert,
        empty map.

        Args:
            name: Name of the cache to remove
            expected: Only remove if the registered cache is this instance

        Returns:
            True if the cache existed and was removed
        """
        with self.entries_locked("remove_cache"):
            with self._caches_locked("remove_cache"):
                cache = self._caches.get(name)
                if cache is None or (expected is not None and cache is not expected):
                    self.trace("remove_cache: Cache %s did not exist.", name)
                    return False
                del self._caches[name]
                cache._removed()
        logger.info("Removed cache '%s'", name, extra={"cache_name": name})
        return True

    def remove_all_caches(self) -> None:
        """Remove every managed cache (see remove_cache)."""
        with self.entries_locked("remove_all_caches"):
            with self._caches_locked("remove_all_caches"):
                caches = list(self._caches.values())
                self._caches.clear()
                for cache in caches:
                    cache._removed()
        if caches:
            logger.info("Removed %d cache(s)", len(caches), extra={"cache_count": len(caches)})

    def close(self) -> None:
        """Remove all caches and stop watching the garbage collector."""
        self.remove_all_caches()
        if self._gc_callback is not None:
            _remove_gc_callback(self._gc_callback)
            self._gc_callback = None

    def __enter__(self) -> CacheManager:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # Size / diagnostics

    def size(self) -> int:
        """Total number of entries across all managed caches."""
        with self.entries_locked("size"):
            size = len(self.index)
            self.trace("size: Managing %d entries.", size)
            return size

    def __len__(self) -> int:
        return self.size()

    def __str__(self) -> str:
        with self._caches_locked("str"):
            counts = {name: len(cache) for name, cache in self._caches.items()}
            total = len(self.index)
        caches = ", ".join(f"{name}: {counts[name]}" for name in sorted(counts, key=str.lower))
        return f"[Total Entries: {total}, Caches[{caches}]]"

    def get_stats(self) -> dict[str, Any]:
        with self._caches_locked("get_stats"):
            caches = list(self._caches.values())
        return {
            "total_entries": len(self.index),
            "max_total_entries": self._max_total_entries,
            "cache_count": len(caches),
            "sweeps": self._sweeps,
            "sweep_window_seconds": self._sweep_window,
            "next_sweep_deadline": self._next_sweep,
            "caches": {cache.name: cache.get_stats() for cache in caches},
        }

    # Sweep

    def expire(self) -> bool:
        """
        Run an expiration sweep over all managed caches now.

        Returns:
            True if any entry was expired or evicted
        """
        with self.entries_locked("expire"):
            return self._expire(self.clock())

    def sweep_if_due(self) -> bool:
        """Run a sweep if the sweep deadline has passed."""
        if self.clock() < self._next_sweep:
            return False
        with self.entries_locked("sweep_if_due"):
            now = self.clock()
            # Another writer may have swept while we waited for the lock
            if now < self._next_sweep:
                return False
            return self._expire(now)

    def release_soft_references(self) -> int:
        """
        Signal memory pressure: soft caches drop their strong references, so
        their values survive only while referenced elsewhere. Reclaimed
        entries are cleaned up by the next sweep.

        Returns:
            Number of soft entries released
        """
        with self.entries_locked("release_soft_references"):
            return self._release_soft_references()

    def _expire(self, now: float) -> bool:
        # A disposer writing back into a cache re-enters on this thread
        if self._sweeping:
            return False
        self._sweeping = True
        try:
            self.trace("expire: Performing expiration run.")
            if self._memory_pressure:
                self._memory_pressure = False
                self._release_soft_references()

            changed = self._expire_due(now)
            if self._enforce_cache_limits():
                changed = True
            if self._enforce_total_limit():
                changed = True
        finally:
            self._sweeping = False

        self._sweeps += 1
        self._next_sweep = now + self._sweep_window
        return changed

    def _expire_due(self, now: float) -> bool:
        due = self.index.take_due(now)
        if not due:
            return False
        changed = False
        requeued: list[CacheEntry] = []
        for entry in due:
            if entry.get_value() is not None and entry.curr_expires > now:
                entry.reconcile()
                requeued.append(entry)
            else:
                self._expire_entry(entry, "old")
                changed = True
        self.index.add_all(requeued)
        return changed

    def _enforce_cache_limits(self) -> bool:
        changed = False
        with self._caches_locked("expire"):
            caches = list(self._caches.values())

        for cache in caches:
            max_entries = cache.max_entries
            if max_entries <= 0 or len(cache) <= max_entries:
                continue
            self.trace(
                "Cache %s has %d too many entries, getting rid of some old ones.",
                cache.name,
                len(cache) - max_entries,
            )
            if self._evict_oldest(len(cache) - max_entries, "max entries", cache):
                changed = True
        return changed

    def _enforce_total_limit(self) -> bool:
        max_total = self._max_total_entries
        if max_total <= 0 or len(self.index) <= max_total:
            return False
        self.trace(
            "Overall we have %d too many entries, getting rid of some old ones.",
            len(self.index) - max_total,
        )
        return self._evict_oldest(len(self.index) - max_total, "total max entries")

    def _evict_oldest(self, excess: int, reason: str, cache: ManagedCache | None = None) -> bool:
        """
        Evict the ``excess`` earliest entries of ``cache`` (of every cache if
        None). Entries refreshed since they were indexed are reconciled and
        re-indexed first, so recently used entries sort behind untouched ones.

        When scanning a single cache, value-less entries of other caches met
        on the way are expired too.
        """
        index = self.index
        refreshed = [
            entry
            for entry in index
            if (cache is None or entry.cache is cache) and entry.refreshed() and entry.get_value() is not None
        ]
        if refreshed:
            index.discard_all(refreshed)
            for entry in refreshed:
                entry.reconcile()
            index.add_all(refreshed)

        if cache is None:
            victims = index.take_first(excess)
            reclaimed: list[CacheEntry] = []
        else:
            victims = []
            reclaimed = []
            for entry in index:
                if len(victims) >= excess:
                    break
                if entry.cache is cache:
                    victims.append(entry)
                elif entry.get_value() is None:
                    reclaimed.append(entry)
            index.discard_all(victims + reclaimed)

        for entry in reclaimed:
            self._expire_entry(entry, "no value")
        for entry in victims:
            self._expire_entry(entry, reason, evicted=True)
        return bool(victims or reclaimed)

    def _expire_entry(self, entry: CacheEntry, reason: str, evicted: bool = False) -> None:
        """Expire an entry already taken out of the index."""
        entry.cache._drop(entry)
        if entry.expire():
            entry.cache._note_expired(evicted)
        self.trace("Expired %s.Key[%r] (%s).", entry.cache_name, entry.key, reason)

    def _release_soft_references(self) -> int:
        released = 0
        for entry in self.index:
            if entry.cache.reference_type == ReferenceType.SOFT:
                entry.release()
                released += 1
        if released:
            logger.info("Released %d soft reference(s)", released, extra={"released": released})
        return released

    def _install_gc_callback(self) -> None:
        manager_ref = weakref.ref(self)

        def on_gc(phase: str, info: dict[str, Any]) -> None:
            # Runs inside the collector: only raise a flag, the next sweep acts on it
            if phase == "stop" and info.get("generation") == 2:
                manager = manager_ref()
                if manager is not None:
                    manager._memory_pressure = True

        gc.callbacks.append(on_gc)
        self._gc_callback = on_gc
        weakref.finalize(self, _remove_gc_callback, on_gc)

    # Locking helpers used by ManagedCache

    @contextmanager
    def entries_locked(self, op: str) -> Generator[None, None, None]:
        """Hold the entry lock, tracing acquisition and release."""
        self.trace("%s: Getting entries lock.", op)
        try:
            with self._entries_lock:
                self.trace("%s: Got entries lock.", op)
                yield
        finally:
            self.trace("%s: Released entries lock.", op)

    @contextmanager
    def _caches_locked(self, op: str) -> Generator[None, None, None]:
        self.trace("%s: Getting caches lock.", op)
        try:
            with self._caches_lock:
                self.trace("%s: Got caches lock.", op)
                yield
        finally:
            self.trace("%s: Released caches lock.", op)

    def try_unlink(self, entry: CacheEntry) -> bool:
        """
        Take an entry out of the index and its cache's map without blocking.

        Used by lock-free readers that found the entry stale; if the entry
        lock is busy the next sweep cleans the entry up instead.
        """
        if not self._entries_lock.acquire(blocking=False):
            return False
        try:
            self.index.discard(entry)
            entry.cache._drop(entry)
            return True
        finally:
            self._entries_lock.release()

    def trace(self, msg: str, *args: Any) -> None:
        log = self._logger
        if log is not None:
            log.info(msg, *args)

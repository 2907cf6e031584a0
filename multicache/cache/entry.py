"""
multicache - Cache Entry

A single cached mapping. Entries carry two expiry timestamps:

- orig_expires: the sort key in the manager's expiry index. Only changed
  while the entry is out of the index (reconciliation during a sweep).
- curr_expires: the real expiry. Pushed forward on access when the owning
  cache refreshes, without touching the index.

The sweep reconciles the two lazily, so reads never pay for a re-sort.
"""

from __future__ import annotations

import itertools
import logging
import threading
from typing import TYPE_CHECKING, Any

from .references import ValueHolder

if TYPE_CHECKING:
    from .store import ManagedCache

logger = logging.getLogger(__name__)

# Identity tie-break for entries sharing an expiry time
_sequence = itertools.count()

# Guards the holder hand-off in _take_holder; held for a single swap only
_holder_lock = threading.Lock()


class CacheEntry:
    """Key, value holder and expiry bookkeeping for one cached mapping."""

    __slots__ = ("key", "ttl", "orig_expires", "curr_expires", "seq", "cache", "_holder")

    def __init__(
        self,
        cache: ManagedCache,
        key: Any,
        holder: ValueHolder,
        now: float,
        ttl: float,
    ):
        self.cache = cache
        self.key = key
        self.ttl = ttl
        self.orig_expires = now + ttl
        self.curr_expires = self.orig_expires
        self.seq = next(_sequence)
        self._holder: ValueHolder | None = holder

    @property
    def cache_name(self) -> str:
        return self.cache.name

    def sort_key(self) -> tuple[float, int, str]:
        return (self.orig_expires, self.seq, self.cache.name)

    def __lt__(self, other: CacheEntry) -> bool:
        return self.sort_key() < other.sort_key()

    def __repr__(self) -> str:
        return f"CacheEntry({self.cache.name!r}, {self.key!r}, expires={self.curr_expires:.3f})"

    def get_value(self) -> Any | None:
        holder = self._holder
        return holder.get_value() if holder is not None else None

    def is_live(self, now: float) -> bool:
        """True if the entry has a value and has not passed its real expiry."""
        return self.curr_expires > now and self.get_value() is not None

    def refreshed(self) -> bool:
        """True if accessed since the entry was last (re)indexed."""
        return self.curr_expires != self.orig_expires

    def touch(self, now: float) -> None:
        if self.cache.refresh:
            self.curr_expires = now + self.ttl

    def reconcile(self) -> None:
        """Adopt the real expiry as the sort key. Entry must be out of the index."""
        self.orig_expires = self.curr_expires

    def release(self) -> None:
        holder = self._holder
        if holder is not None:
            holder.release()

    def expire(self) -> bool:
        """
        Discard the value on behalf of the cache.

        Runs the owning cache's disposer for a live value. Safe to call
        repeatedly and from any thread; only the first call disposes.

        Returns:
            True if this call cleared the value
        """
        holder = self._take_holder()
        if holder is None:
            return False
        value = holder.get_value()
        disposer = self.cache.value_disposer
        if disposer is not None and value is not None:
            try:
                disposer(value)
            except Exception as e:
                logger.warning(
                    "Value disposer failed for %s[%r]: %s",
                    self.cache.name,
                    self.key,
                    e,
                    extra={"cache_name": self.cache.name, "error": str(e)},
                    exc_info=True,
                )
        return True

    def discard(self) -> bool:
        """
        Clear the value without disposing it (removed or replaced by a caller).

        Returns:
            True if this call cleared the value
        """
        return self._take_holder() is not None

    def _take_holder(self) -> ValueHolder | None:
        with _holder_lock:
            holder = self._holder
            self._holder = None
        return holder

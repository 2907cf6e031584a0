"""
multicache - Expiry Index

Ordered index of every live entry across all caches of a manager, ordered by
(orig_expires, seq, cache_name). Not thread-safe; the manager's entry lock
guards it.

Single adds and discards are bisect lookups. The sweep works in batches
(take_due, take_first, discard_all, add_all) so that expiring or evicting k
entries costs one pass over the index rather than k of them.
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right, insort
from collections.abc import Iterable, Iterator

from .entry import CacheEntry


def _orig_expires(entry: CacheEntry) -> float:
    return entry.orig_expires


class ExpiryIndex:
    """Sorted list of entries, earliest sort key first."""

    __slots__ = ("_entries",)

    def __init__(self) -> None:
        self._entries: list[CacheEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __contains__(self, entry: CacheEntry) -> bool:
        return self._position(entry) is not None

    def __iter__(self) -> Iterator[CacheEntry]:
        # Snapshot, so callers may add/discard while scanning
        return iter(list(self._entries))

    def add(self, entry: CacheEntry) -> None:
        insort(self._entries, entry)

    def add_all(self, entries: Iterable[CacheEntry]) -> None:
        """Insert a batch of entries with a single re-sort."""
        entries = list(entries)
        if len(entries) == 1:
            self.add(entries[0])
        elif entries:
            self._entries.extend(entries)
            self._entries.sort()

    def discard(self, entry: CacheEntry) -> bool:
        """Remove the entry if present. Returns True if it was indexed."""
        pos = self._position(entry)
        if pos is None:
            return False
        del self._entries[pos]
        return True

    def discard_all(self, entries: Iterable[CacheEntry]) -> int:
        """Remove a batch of entries in one pass. Returns how many were indexed."""
        drop = {id(e) for e in entries}
        if not drop:
            return 0
        before = len(self._entries)
        self._entries = [e for e in self._entries if id(e) not in drop]
        return before - len(self._entries)

    def first(self) -> CacheEntry | None:
        return self._entries[0] if self._entries else None

    def take_first(self, count: int) -> list[CacheEntry]:
        """Remove and return the ``count`` earliest entries."""
        taken = self._entries[:count]
        del self._entries[:count]
        return taken

    def take_due(self, now: float) -> list[CacheEntry]:
        """
        Remove and return every entry whose sort key has passed ``now``,
        together with any value-less entries directly after them.
        """
        entries = self._entries
        cut = bisect_right(entries, now, key=_orig_expires)
        while cut < len(entries) and entries[cut].get_value() is None:
            cut += 1
        return self.take_first(cut)

    def clear(self) -> None:
        self._entries.clear()

    def _position(self, entry: CacheEntry) -> int | None:
        pos = bisect_left(self._entries, entry)
        if pos < len(self._entries) and self._entries[pos] is entry:
            return pos
        return None

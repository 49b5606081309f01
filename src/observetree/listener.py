"""Listener entries and the ordered listener set every node registers into.

Delivery order and membership are kept apart:
- order: priority descending, then registration sequence (oldest first)
- membership: the (callback, priority) key

So the same callback registered at two priorities is two entries and fires
twice; registering it again at an existing priority is refused.
"""

from __future__ import annotations

import itertools
from enum import IntEnum
from typing import Callable, Hashable, Iterable, Iterator

Callback = Callable[[], None]

# Global registration sequence, shared by every set so that merged sets
# built during notification still order ties deterministically.
_seq_counter = itertools.count()


class Priority(IntEnum):
    """Five conventional priority levels. Any int is accepted as a priority."""

    VERY_HIGH = 2
    HIGH = 1
    NORMAL = 0
    LOW = -1
    VERY_LOW = -2


class ListenerEntry:
    """A (callback, priority) pair with its registration sequence number."""

    __slots__ = ("callback", "priority", "seq")

    def __init__(self, callback: Callback, priority: int, seq: int | None = None) -> None:
        self.callback = callback
        self.priority = int(priority)
        self.seq = next(_seq_counter) if seq is None else seq

    @property
    def key(self) -> tuple[Hashable, int]:
        return (self.callback, self.priority)

    def sort_key(self) -> tuple[int, int]:
        return (-self.priority, self.seq)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ListenerEntry):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        name = getattr(self.callback, "__qualname__", repr(self.callback))
        return f"ListenerEntry({name}, priority={self.priority})"


class ListenerSet:
    """Ordered set of ListenerEntry, deduplicated by (callback, priority)."""

    __slots__ = ("_entries", "_ordered")

    def __init__(self, entries: Iterable[ListenerEntry] = ()) -> None:
        self._entries: dict[tuple, ListenerEntry] = {}
        self._ordered: list[ListenerEntry] | None = None
        self.merge(entries)

    def add(self, callback: Callback, priority: int = Priority.NORMAL) -> bool:
        """Register callback at priority. False if that exact pair is present."""
        key = (callback, int(priority))
        if key in self._entries:
            return False
        self._entries[key] = ListenerEntry(callback, priority)
        self._ordered = None
        return True

    def remove(self, callback: Callback) -> bool:
        """Remove the first entry (in delivery order) holding callback."""
        for entry in self:
            if entry.callback == callback:
                del self._entries[entry.key]
                self._ordered = None
                return True
        return False

    def discard(self, callback: Callback, priority: int) -> bool:
        """Remove exactly the (callback, priority) entry."""
        if self._entries.pop((callback, int(priority)), None) is None:
            return False
        self._ordered = None
        return True

    def merge(self, entries: Iterable[ListenerEntry]) -> None:
        """Insert entries as-is, keeping their sequence numbers. Duplicates are skipped."""
        for entry in entries:
            if entry.key not in self._entries:
                self._entries[entry.key] = entry
                self._ordered = None

    def clear(self) -> None:
        self._entries.clear()
        self._ordered = None

    def _sorted(self) -> list[ListenerEntry]:
        if self._ordered is None:
            self._ordered = sorted(self._entries.values(), key=ListenerEntry.sort_key)
        return self._ordered

    def __iter__(self) -> Iterator[ListenerEntry]:
        # Snapshot — callbacks may add or remove listeners while we iterate.
        return iter(list(self._sorted()))

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, ListenerEntry):
            return item.key in self._entries
        return item in self._entries

    def __repr__(self) -> str:
        return f"ListenerSet({self._sorted()!r})"

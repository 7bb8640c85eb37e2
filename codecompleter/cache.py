"""Suggestion cache keyed by context fingerprint.

Bounded in-memory store shared by every in-flight fetch. A single lock guards
all reads and writes, so a stored value is always one complete suggestion list
and concurrent stores to the same key resolve as last-write-wins. The least
recently used entry is evicted once ``max_entries`` is reached, and entries
older than ``ttl_seconds`` (when set) are treated as misses.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Sequence

from .response_parser import MAX_SUGGESTIONS, Suggestion


@dataclass(frozen=True)
class CacheEntry:
    suggestions: tuple[Suggestion, ...]
    stored_at: float


class SuggestionCache:
    def __init__(
        self,
        max_entries: int = 256,
        ttl_seconds: float | None = None,
        max_suggestions: int = MAX_SUGGESTIONS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self.max_suggestions = max_suggestions
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def _is_expired(self, entry: CacheEntry) -> bool:
        if self.ttl_seconds is None:
            return False
        return self._clock() - entry.stored_at > self.ttl_seconds

    def lookup(self, fingerprint: str) -> tuple[Suggestion, ...] | None:
        """Return the cached suggestions for ``fingerprint``, or None."""
        with self._lock:
            entry = self._entries.get(fingerprint)
            if entry is None:
                self._misses += 1
                return None
            if self._is_expired(entry):
                del self._entries[fingerprint]
                self._misses += 1
                return None
            self._entries.move_to_end(fingerprint)
            self._hits += 1
            return entry.suggestions

    def store(self, fingerprint: str, suggestions: Sequence[Suggestion]) -> None:
        """Replace the entry for ``fingerprint`` with ``suggestions``.

        Empty lists are rejected; a fallback is never cached.
        """
        if not suggestions:
            raise ValueError("Refusing to cache an empty suggestion list")
        entry = CacheEntry(
            suggestions=tuple(suggestions[: self.max_suggestions]),
            stored_at=self._clock(),
        )
        with self._lock:
            self._entries[fingerprint] = entry
            self._entries.move_to_end(fingerprint)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
                self._evictions += 1

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, fingerprint: object) -> bool:
        with self._lock:
            entry = self._entries.get(fingerprint)  # type: ignore[arg-type]
            return entry is not None and not self._is_expired(entry)

    def get_stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "size": len(self._entries),
                "max_size": self.max_entries,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }

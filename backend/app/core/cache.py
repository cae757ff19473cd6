"""Bounded in-memory response cache with per-entry TTL and LRU eviction.

Keeps expensive aggregate queries (assignment statistics, file listings)
from re-scanning the store on every admin request. A miss is always
recoverable by recomputing from the store; nothing here is durable.
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from fastapi import Request

KEY_NAMESPACE = "admin"

DEFAULT_MAX_ENTRIES = 300


@dataclass
class CacheEntry:
    """Cached value with its absolute expiry (clock seconds)."""
    value: Any
    expires_at: float


class ResponseCache:
    """Capacity-bounded TTL cache with least-recently-used eviction.

    Recency is tracked by the insertion order of an OrderedDict: every hit
    and every set moves the key to the most-recently-used end, and eviction
    pops from the other end. Expired entries are removed lazily on lookup.

    A single lock guards the map so concurrent request handlers cannot
    corrupt it. Exact eviction order under concurrent writers is not
    guaranteed.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max(1, max_entries)
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None on a miss.

        An entry whose expiry has passed is deleted and reported as a miss.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return entry.value

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store a value for ``ttl`` seconds, replacing any previous entry.

        Args:
            key: Cache key, usually built with :func:`make_key`
            value: Payload to cache
            ttl: Time-to-live in seconds
        """
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def delete(self, key: str) -> bool:
        """Remove a single entry. Returns False if the key was not cached."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def delete_by_prefix(self, prefix: str) -> int:
        """Remove every entry whose key starts with ``prefix``.

        Returns:
            Number of entries removed
        """
        with self._lock:
            stale = [key for key in self._entries if key.startswith(prefix)]
            for key in stale:
                del self._entries[key]
            return len(stale)

    def clear(self) -> None:
        """Drop all entries."""
        with self._lock:
            self._entries.clear()

    def keys(self) -> list[str]:
        """Snapshot of stored keys, least recently used first."""
        with self._lock:
            return list(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def make_key(resource: str, parts: Iterable[Any] = ()) -> str:
    """Build a namespaced cache key from a resource name and filter values.

    None values are skipped so that optional filters left unset do not
    change the key. Booleans are lower-cased to match query-string form.

    Examples:
        >>> make_key("assign", ["stats"])
        'admin:assign:stats'
        >>> make_key("files", ["paid", None, 1, 50])
        'admin:files:paid:1:50'
    """
    rendered = []
    for part in parts:
        if part is None:
            continue
        if isinstance(part, bool):
            rendered.append("true" if part else "false")
        else:
            rendered.append(str(part))
    return ":".join([KEY_NAMESPACE, resource, *rendered])


def get_response_cache(request: Request) -> ResponseCache:
    """Dependency returning the process-wide cache built at startup."""
    return request.app.state.response_cache

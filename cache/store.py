"""
cache/store.py -- In-process TTL cache for reference-data lookups.

Avoids redundant calls to ViaCEP and IBGE by keeping successful results for a
configurable TTL (default 24 hours). The clock is injectable so expiry can be
tested without sleeping. Owned by core/lookup.ReferenceDataService and stored
on app.state; there is no module-level instance.

Usage:
    cache = TTLCache(ttl=86400)
    data = cache.get("cep:01001000")   # returns value or None
    cache.set("cep:01001000", data)
    cache.purge_expired()              # call periodically to trim old entries
"""

import threading
import time
from typing import Any, Callable, Optional

_DEFAULT_TTL = 60 * 60 * 24  # 24 hours in seconds


class TTLCache:
    def __init__(self, ttl: float = _DEFAULT_TTL, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}
        # Sync route handlers run in a thread pool
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value for key if it exists and hasn't expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, cached_at = entry
            if self._clock() - cached_at >= self.ttl:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any) -> None:
        """Store value for key, replacing any existing entry."""
        with self._lock:
            self._entries[key] = (value, self._clock())

    def get_or_load(self, key: str, loader: Callable[[], Optional[Any]]) -> Optional[Any]:
        """Return the cached value, or call loader and cache a non-None result.

        Exceptions from loader propagate and nothing is cached.
        """
        value = self.get(key)
        if value is not None:
            return value
        value = loader()
        if value is not None:
            self.set(key, value)
        return value

    def purge_expired(self) -> int:
        """Delete all entries older than TTL. Returns number of entries removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, (_, cached_at) in self._entries.items() if now - cached_at >= self.ttl]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

"""In-memory LRU store bounded by entry count and estimated byte size."""

import json
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, List, Optional

from ..config import CACHE_CLEANUP_INTERVAL, CACHE_MAX_ENTRIES, CACHE_MAX_SIZE, CACHE_TTL
from ..exceptions import CacheSerializationError
from .models import CacheEntry, CacheStats


def estimate_size(value: Any) -> int:
    """
    Estimate the size of a value as the UTF-8 length of its compact JSON form.

    This is an approximation of memory use, not exact accounting.

    Args:
        value: Any JSON-serializable value

    Returns:
        Size in bytes

    Raises:
        CacheSerializationError: If the value cannot be serialized to JSON
    """
    try:
        text = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise CacheSerializationError(f"Value is not JSON-serializable: {e}") from e
    return len(text.encode("utf-8"))


class SmartCache:
    """LRU cache with size limits, access statistics and time-based expiry."""

    def __init__(
        self,
        max_size: int = CACHE_MAX_SIZE,
        max_entries: int = CACHE_MAX_ENTRIES,
        ttl: float = CACHE_TTL,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the store.

        Args:
            max_size: Ceiling on the total estimated size in bytes
            max_entries: Ceiling on the number of entries
            ttl: Seconds after creation at which an entry expires
            clock: Time source returning seconds
        """
        self.max_size = max_size
        self.max_entries = max_entries
        self.ttl = ttl
        self._clock = clock
        # Ordered oldest-touched first; get() moves hits to the end
        self._cache: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._total_size = 0
        self._lock = threading.RLock()

    def get(self, key: str) -> Any:
        """
        Get a value, updating its LRU bookkeeping.

        Returns:
            Cached value, or None if missing or expired
        """
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None

            now = self._clock()
            if now - entry.timestamp > self.ttl:
                self._remove(key)
                return None

            entry.last_accessed = now
            entry.access_count += 1
            self._cache.move_to_end(key)
            return entry.data

    def peek(self, key: str) -> Optional[CacheEntry]:
        """Return the raw entry for a key without touching LRU bookkeeping."""
        with self._lock:
            return self._cache.get(key)

    def set(self, key: str, value: Any) -> bool:
        """
        Store a value, evicting least recently used entries to make room.

        Args:
            key: Cache key
            value: JSON-serializable value

        Returns:
            True if stored, False if the value was rejected (too large or
            not serializable). A rejected value still drops any previous
            entry for the key.
        """
        try:
            size = estimate_size(value)
        except CacheSerializationError as e:
            print(f"Error setting cache for '{key}': {e}")
            self.delete(key)
            return False

        limit = self.max_size * 0.5
        if size > limit:
            print(f"Warning: Data too large to cache: {size} bytes (max {int(limit)})")
            self.delete(key)
            return False

        with self._lock:
            now = self._clock()
            if key in self._cache:
                self._remove(key)

            self._evict_if_needed(size)

            self._cache[key] = CacheEntry(
                key=key,
                data=value,
                timestamp=now,
                last_accessed=now,
                size=size,
            )
            self._total_size += size
            return True

    def delete(self, key: str) -> bool:
        """Remove a key. Returns True if it was present."""
        with self._lock:
            if key not in self._cache:
                return False
            self._remove(key)
            return True

    def clear(self) -> None:
        """Remove all entries."""
        with self._lock:
            self._cache.clear()
            self._total_size = 0

    def keys(self) -> List[str]:
        """Return keys, least recently used first."""
        with self._lock:
            return list(self._cache.keys())

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: str) -> bool:
        return key in self._cache

    @property
    def total_size(self) -> int:
        return self._total_size

    def now(self) -> float:
        """Current time according to the store's clock."""
        return self._clock()

    def get_stats(self) -> CacheStats:
        """Return a snapshot of entry count, size, age range and access counts."""
        with self._lock:
            entries = list(self._cache.values())
            if not entries:
                return CacheStats()

            timestamps = [e.timestamp for e in entries]
            return CacheStats(
                total_entries=len(entries),
                total_size=self._total_size,
                oldest_entry=min(timestamps),
                newest_entry=max(timestamps),
                average_access_count=sum(e.access_count for e in entries) / len(entries),
            )

    def cleanup(self) -> int:
        """
        Remove entries older than the TTL.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._cache.items() if now - e.timestamp > self.ttl]
            for key in expired:
                self._remove(key)

        if expired:
            print(f"Cleaned up {len(expired)} expired cache entries")
        return len(expired)

    def get_top_entries(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Return the most accessed keys with their access counts."""
        with self._lock:
            ranked = sorted(self._cache.values(), key=lambda e: e.access_count, reverse=True)
            return [{"key": e.key, "access_count": e.access_count} for e in ranked[:limit]]

    def _evict_if_needed(self, new_entry_size: int) -> None:
        while self._cache and (
            self._total_size + new_entry_size > self.max_size
            or len(self._cache) >= self.max_entries
        ):
            # min() keeps the first of equal timestamps, i.e. the least recently touched
            lru_key = min(self._cache.items(), key=lambda item: item[1].last_accessed)[0]
            self._remove(lru_key)
            print(f"Evicted cache entry: {lru_key}")

    def _remove(self, key: str) -> None:
        entry = self._cache.pop(key)
        self._total_size -= entry.size


class CacheCleaner:
    """Periodically removes expired entries from a SmartCache in a background thread."""

    def __init__(self, cache: SmartCache, interval: float = CACHE_CLEANUP_INTERVAL):
        """
        Initialize the cleaner.

        Args:
            cache: Store to clean
            interval: Seconds between cleanup passes
        """
        self.cache = cache
        self.interval = interval
        self.running = False
        self.thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    def start(self) -> None:
        """Start the background cleanup thread."""
        if self.running:
            return

        self.running = True
        self._stop_event.clear()
        self.thread = threading.Thread(target=self._cleanup_loop, daemon=True)
        self.thread.start()

    def stop(self) -> None:
        """Stop the background thread gracefully."""
        self.running = False
        self._stop_event.set()
        if self.thread:
            self.thread.join(timeout=1.0)
        self.thread = None

    def _cleanup_loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self.cache.cleanup()
            except Exception as e:
                print(f"Error in cache cleaner: {e}")


__all__ = [
    "SmartCache",
    "CacheCleaner",
    "estimate_size",
]

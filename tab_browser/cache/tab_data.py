"""Durable tab-scoped data cache fronted by the in-memory LRU store."""

import json
import threading
import time
from typing import Any, Callable, Dict, Optional

from ..config import TAB_DATA_MAX_AGE, TAB_DATA_SAVE_DELAY
from ..exceptions import StorageError
from ..storage import TAB_DATA_CACHE_KEY, Storage
from .inflight import InflightRequests
from .models import TabDataEntry, TabDataStats, WriteResult
from .smart_cache import SmartCache


class TabDataCache:
    """
    Cache of page data keyed by composite key (route path + logical key).

    Entries live in an in-process mirror that is written to durable storage
    under ``tab-data-cache`` on a debounce. Reads go to the memory tier first
    and fall back to the mirror; entries older than ``max_age`` are dropped
    lazily when read.
    """

    def __init__(
        self,
        storage: Storage,
        memory_cache: SmartCache,
        max_age: float = TAB_DATA_MAX_AGE,
        save_delay: float = TAB_DATA_SAVE_DELAY,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the cache and restore unexpired entries from storage.

        Args:
            storage: Durable storage backend
            memory_cache: In-memory LRU store used as the fast path
            max_age: Seconds after which an entry is stale
            save_delay: Debounce delay in seconds for durable saves
            clock: Time source returning seconds
        """
        self.storage = storage
        self.memory_cache = memory_cache
        self.max_age = max_age
        self.save_delay = save_delay
        self._clock = clock
        self.inflight = InflightRequests()
        self.last_save_error: Optional[str] = None

        self._entries: Dict[str, TabDataEntry] = {}
        self._lock = threading.RLock()
        self._save_timer: Optional[threading.Timer] = None

        self._load()

    def set_tab_data(self, key: str, data: Any, path: str) -> WriteResult:
        """
        Write a value through both tiers and schedule a durable save.

        Args:
            key: Composite cache key
            data: Value to cache
            path: Route path the value belongs to

        Returns:
            WriteResult telling which tiers accepted the value
        """
        memory_ok = self.memory_cache.set(key, data)

        try:
            json.dumps(data)
        except (TypeError, ValueError) as e:
            print(f"Error caching tab data '{key}': {e}")
            return WriteResult(memory=memory_ok, durable=False)

        with self._lock:
            self._entries[key] = TabDataEntry(data=data, timestamp=self._clock(), path=path)
            self._schedule_save()

        if not memory_ok:
            print(f"Warning: Tab data '{key}' cached durably but not in memory")
        return WriteResult(memory=memory_ok, durable=True)

    def get_tab_data(self, key: str) -> Any:
        """
        Read a value, memory tier first.

        Returns:
            Cached value, or None if absent or older than max_age
        """
        cached = self.memory_cache.get(key)
        if cached is not None:
            return cached

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            if self._clock() - entry.timestamp > self.max_age:
                del self._entries[key]
                self._schedule_save()
                return None

        # Promote to the memory tier for faster access next time
        self.memory_cache.set(key, entry.data)
        return entry.data

    def clear_tab_data(self, key: str) -> None:
        """Remove a key from both tiers."""
        self.memory_cache.delete(key)
        with self._lock:
            if self._entries.pop(key, None) is not None:
                self._schedule_save()

    def clear_all_tab_data(self) -> None:
        """Remove every entry from both tiers and from durable storage."""
        self.memory_cache.clear()
        with self._lock:
            self._entries.clear()
            self._cancel_save()
            try:
                self.storage.remove_item(TAB_DATA_CACHE_KEY)
            except StorageError as e:
                print(f"Error clearing all tab data from storage: {e}")

    def has_tab_data(self, key: str) -> bool:
        """True if the durable mirror holds the key (expired or not)."""
        with self._lock:
            return key in self._entries

    def entries(self) -> Dict[str, TabDataEntry]:
        """Return a shallow copy of the durable mirror."""
        with self._lock:
            return dict(self._entries)

    def get_stats(self) -> TabDataStats:
        with self._lock:
            entries = list(self._entries.values())
            pending = self._save_timer is not None
        if not entries:
            return TabDataStats(pending_save=pending, last_save_error=self.last_save_error)

        timestamps = [e.timestamp for e in entries]
        return TabDataStats(
            total_entries=len(entries),
            paths=sorted({e.path for e in entries}),
            oldest_entry=min(timestamps),
            newest_entry=max(timestamps),
            pending_save=pending,
            last_save_error=self.last_save_error,
        )

    def flush(self) -> None:
        """Perform a pending save immediately."""
        with self._lock:
            if self._save_timer is None:
                return
            self._cancel_save()
        self._save()

    def close(self) -> None:
        """Flush pending writes before shutdown."""
        self.flush()

    def _load(self) -> None:
        """Restore the mirror from storage, dropping stale entries."""
        try:
            saved = self.storage.get_item(TAB_DATA_CACHE_KEY)
            if not saved:
                return

            parsed = json.loads(saved)
            if not isinstance(parsed, dict):
                raise ValueError("tab data cache is not a JSON object")

            now = self._clock()
            for key, raw in parsed.items():
                entry = TabDataEntry.from_dict(raw)
                if now - entry.timestamp <= self.max_age:
                    self._entries[key] = entry
        except (StorageError, ValueError, TypeError, KeyError, AttributeError) as e:
            print(f"Error loading tab data from storage: {e}")
            self._entries = {}

    def _schedule_save(self) -> None:
        # Caller holds self._lock
        self._cancel_save()
        self._save_timer = threading.Timer(self.save_delay, self._save_from_timer)
        self._save_timer.daemon = True
        self._save_timer.start()

    def _cancel_save(self) -> None:
        if self._save_timer is not None:
            self._save_timer.cancel()
            self._save_timer = None

    def _save_from_timer(self) -> None:
        with self._lock:
            if self._save_timer is not threading.current_thread():
                # Superseded by a newer schedule or a flush
                return
            self._save_timer = None
        self._save()

    def _save(self) -> None:
        with self._lock:
            snapshot = {key: entry.to_dict() for key, entry in self._entries.items()}
            try:
                self.storage.set_item(TAB_DATA_CACHE_KEY, json.dumps(snapshot))
                self.last_save_error = None
            except StorageError as e:
                self.last_save_error = str(e)
                print(f"Error saving tab data to storage: {e}")


__all__ = ["TabDataCache"]

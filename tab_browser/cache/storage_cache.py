"""Per-key expiring cache written straight to durable storage."""

import json
import time
from typing import Any, Callable, List, Optional

from ..config import TAB_DATA_MAX_AGE
from ..exceptions import StorageError
from ..storage import TAB_DATA_CACHE_KEY, Storage

CACHE_KEYS = {
    "PRODUCTS": "tonkho_products",
    "WAREHOUSES": "tonkho_warehouses",
    "EMPLOYEES": "tonkho_employees",
    "INVENTORIES": "tonkho_inventories",
}

# Seconds
CACHE_DURATION = {
    "PRODUCTS": 30 * 60,
    "WAREHOUSES": 60 * 60,
    "EMPLOYEES": 60 * 60,
    "INVENTORIES": 10 * 60,
}


class StorageCache:
    """Stores ``{data, timestamp, expiresIn}`` records under their own storage keys."""

    def __init__(self, storage: Storage, clock: Callable[[], float] = time.time):
        self.storage = storage
        self._clock = clock

    def save(self, key: str, data: Any, expires_in: float = CACHE_DURATION["PRODUCTS"]) -> bool:
        """
        Save a value with an expiry.

        Args:
            key: Storage key
            data: JSON-serializable value
            expires_in: Lifetime in seconds

        Returns:
            True if saved
        """
        try:
            record = {"data": data, "timestamp": self._clock(), "expiresIn": expires_in}
            self.storage.set_item(key, json.dumps(record))
            return True
        except (StorageError, TypeError, ValueError) as e:
            print(f"Warning: Failed to save to cache: {e}")
            return False

    def get(self, key: str) -> Any:
        """Return the value for a key, or None if absent, expired or corrupt."""
        try:
            record = self._read(key)
            if record is None:
                return None

            if self._clock() - record["timestamp"] > record["expiresIn"]:
                self.storage.remove_item(key)
                return None

            return record["data"]
        except (StorageError, ValueError, TypeError, KeyError) as e:
            print(f"Warning: Failed to get from cache: {e}")
            self._remove_quietly(key)
            return None

    def clear(self, key: str) -> None:
        self._remove_quietly(key)

    def clear_all(self) -> None:
        """Remove the application's well-known cache keys."""
        for key in CACHE_KEYS.values():
            self._remove_quietly(key)

    def clear_all_app_cache(self) -> int:
        """
        Remove every cache-like key, including the tab data cache.

        Returns:
            Number of keys removed
        """
        try:
            doomed = set(CACHE_KEYS.values())
            doomed.add(TAB_DATA_CACHE_KEY)
            for key in self.storage.keys():
                if (
                    key.startswith("tonkho_")
                    or key.startswith("tab-")
                    or "cache" in key
                    or "Cache" in key
                ):
                    doomed.add(key)

            for key in doomed:
                self.storage.remove_item(key)
        except StorageError as e:
            print(f"Warning: Failed to clear all app cache: {e}")
            return 0

        print(f"All app cache cleared successfully. Removed {len(doomed)} cache entries")
        return len(doomed)

    def is_valid(self, key: str) -> bool:
        try:
            record = self._read(key)
            if record is None:
                return False
            return self._clock() - record["timestamp"] <= record["expiresIn"]
        except (StorageError, ValueError, TypeError, KeyError):
            return False

    def get_age_minutes(self, key: str) -> int:
        """Whole minutes since the value was saved, or -1 if unavailable."""
        try:
            record = self._read(key)
            if record is None:
                return -1
            return int((self._clock() - record["timestamp"]) // 60)
        except (StorageError, ValueError, TypeError, KeyError):
            return -1

    def cleanup_expired(self) -> List[str]:
        """
        Remove expired well-known keys, and the tab data cache if any of its
        entries is older than a day or it cannot be parsed.

        Returns:
            Keys removed
        """
        try:
            stored = set(self.storage.keys())
            doomed = [
                key for key in CACHE_KEYS.values()
                if key in stored and not self.is_valid(key)
            ]

            tab_data = self.storage.get_item(TAB_DATA_CACHE_KEY)
            if tab_data:
                try:
                    now = self._clock()
                    entries = json.loads(tab_data)
                    if any(now - value["timestamp"] > TAB_DATA_MAX_AGE for value in entries.values()):
                        doomed.append(TAB_DATA_CACHE_KEY)
                except (ValueError, TypeError, KeyError, AttributeError):
                    doomed.append(TAB_DATA_CACHE_KEY)

            for key in doomed:
                self.storage.remove_item(key)
        except StorageError as e:
            print(f"Warning: Failed to cleanup expired cache: {e}")
            return []

        if doomed:
            print(f"Cleaned up {len(doomed)} expired cache entries")
        return doomed

    def _read(self, key: str) -> Optional[dict]:
        cached = self.storage.get_item(key)
        if not cached:
            return None
        return json.loads(cached)

    def _remove_quietly(self, key: str) -> None:
        try:
            self.storage.remove_item(key)
        except StorageError as e:
            print(f"Warning: Failed to clear cache: {e}")


__all__ = ["StorageCache", "CACHE_KEYS", "CACHE_DURATION"]

"""Durable key/value storage used in place of browser local storage.

Values are always strings (callers serialize to JSON themselves), mirroring
the ``getItem``/``setItem``/``removeItem`` surface of web storage.
"""

import json
import os
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from .exceptions import StorageQuotaError, StorageReadError, StorageWriteError

# Durable keys
TAB_DATA_CACHE_KEY = "tab-data-cache"
BROWSER_TABS_KEY = "browser-tabs"


class Storage(ABC):
    """Abstract base class for durable string storage."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """
        Read a stored value.

        Args:
            key: Storage key

        Returns:
            Stored string, or None if the key is absent

        Raises:
            StorageReadError: If the backing store cannot be read
        """
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """
        Store a value, replacing any previous one.

        Raises:
            StorageWriteError: If the backing store cannot be written
        """
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove a key. Removing an absent key is a no-op."""
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        """Return all stored keys."""
        pass


class MemoryStorage(Storage):
    """Dict-backed storage with an optional byte quota."""

    def __init__(self, quota: Optional[int] = None):
        """
        Initialize memory storage.

        Args:
            quota: Maximum total size of stored values in bytes (None = unlimited)
        """
        self.quota = quota
        self._items: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageWriteError(f"Storage values must be strings, got {type(value).__name__}")
        with self._lock:
            if self.quota is not None:
                used = sum(len(v.encode("utf-8")) for k, v in self._items.items() if k != key)
                needed = len(value.encode("utf-8"))
                if used + needed > self.quota:
                    raise StorageQuotaError(
                        f"Storage quota exceeded writing '{key}': {used + needed} > {self.quota} bytes"
                    )
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._items.keys())


class JSONFileStorage(Storage):
    """Storage persisted as a single JSON object in a file on disk."""

    def __init__(self, path: str):
        """
        Initialize file storage.

        Args:
            path: Path to the JSON file (created on first write)
        """
        self.path = os.path.expanduser(path)
        self._lock = threading.Lock()

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageWriteError(f"Storage values must be strings, got {type(value).__name__}")
        with self._lock:
            items = self._read_for_update()
            items[key] = value
            self._write(items)

    def remove_item(self, key: str) -> None:
        with self._lock:
            items = self._read_for_update()
            if key in items:
                del items[key]
                self._write(items)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._read().keys())

    def _read(self) -> Dict[str, str]:
        """Load the whole store from disk."""
        if not os.path.exists(self.path):
            return {}

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            raise StorageReadError(f"Failed to read storage from {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise StorageReadError(f"Storage file {self.path} does not contain a JSON object")
        return data

    def _read_for_update(self) -> Dict[str, str]:
        # A corrupt file is replaced rather than blocking every later write
        try:
            return self._read()
        except StorageReadError as e:
            print(f"Warning: {e}; starting with empty storage")
            return {}

    def _write(self, items: Dict[str, str]) -> None:
        """Save the whole store to disk."""
        try:
            data_dir = os.path.dirname(self.path)
            if data_dir and not os.path.exists(data_dir):
                os.makedirs(data_dir, exist_ok=True)

            tmp_path = f"{self.path}.tmp"
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(items, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except (IOError, OSError) as e:
            raise StorageWriteError(f"Failed to save storage to {self.path}: {e}") from e


__all__ = [
    "Storage",
    "MemoryStorage",
    "JSONFileStorage",
    "TAB_DATA_CACHE_KEY",
    "BROWSER_TABS_KEY",
]

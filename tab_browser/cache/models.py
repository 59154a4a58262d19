"""Data models for cache storage."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class CacheEntry:
    """Entry held by the in-memory LRU store."""
    key: str
    data: Any
    timestamp: float
    last_accessed: float
    size: int
    access_count: int = 0


@dataclass
class CacheStats:
    """Snapshot of the in-memory LRU store."""
    total_entries: int = 0
    total_size: int = 0
    oldest_entry: float = 0
    newest_entry: float = 0
    average_access_count: float = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_entries": self.total_entries,
            "total_size": self.total_size,
            "oldest_entry": self.oldest_entry,
            "newest_entry": self.newest_entry,
            "average_access_count": self.average_access_count,
        }


@dataclass
class TabDataEntry:
    """Entry held by the durable tab-scoped cache."""
    data: Any
    timestamp: float
    path: str

    def to_dict(self) -> Dict[str, Any]:
        return {"data": self.data, "timestamp": self.timestamp, "path": self.path}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "TabDataEntry":
        return cls(
            data=raw.get("data"),
            timestamp=float(raw["timestamp"]),
            path=str(raw.get("path", "")),
        )


@dataclass
class TabDataStats:
    """Snapshot of the durable tab-scoped cache."""
    total_entries: int = 0
    paths: List[str] = field(default_factory=list)
    oldest_entry: float = 0
    newest_entry: float = 0
    pending_save: bool = False
    last_save_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_entries": self.total_entries,
            "paths": list(self.paths),
            "oldest_entry": self.oldest_entry,
            "newest_entry": self.newest_entry,
            "pending_save": self.pending_save,
            "last_save_error": self.last_save_error,
        }


@dataclass
class WriteResult:
    """Outcome of a write-through to both cache tiers."""
    memory: bool
    durable: bool

    @property
    def ok(self) -> bool:
        """True if both tiers accepted the value."""
        return self.memory and self.durable

    @property
    def partial(self) -> bool:
        """True if exactly one tier accepted the value."""
        return self.memory != self.durable

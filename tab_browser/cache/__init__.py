"""Cache package: in-memory LRU store, durable tab-scoped cache and helpers."""

from .inflight import InflightRequests
from .models import CacheEntry, CacheStats, TabDataEntry, TabDataStats, WriteResult
from .smart_cache import CacheCleaner, SmartCache, estimate_size
from .storage_cache import CACHE_DURATION, CACHE_KEYS, StorageCache
from .tab_data import TabDataCache

__all__ = [
    'CacheCleaner',
    'CacheEntry',
    'CacheStats',
    'InflightRequests',
    'SmartCache',
    'StorageCache',
    'TabDataCache',
    'TabDataEntry',
    'TabDataStats',
    'WriteResult',
    'CACHE_DURATION',
    'CACHE_KEYS',
    'estimate_size',
]

"""Tabbed browsing shell: tab registry and two-tier tab-scoped data cache."""

from .cache import SmartCache, TabDataCache, WriteResult
from .page_data import PageData, SmartData
from .storage import JSONFileStorage, MemoryStorage, Storage
from .tabs import Tab, TabRegistry

__all__ = [
    'JSONFileStorage',
    'MemoryStorage',
    'PageData',
    'SmartCache',
    'SmartData',
    'Storage',
    'Tab',
    'TabDataCache',
    'TabRegistry',
    'WriteResult',
]

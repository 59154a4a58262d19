"""Main entry point and component wiring for the tab browser."""

import time
from dataclasses import dataclass
from typing import Callable, Optional

from .cache import CacheCleaner, SmartCache, StorageCache, TabDataCache
from .config import (
    API_PORT, CACHE_CLEANUP_INTERVAL, CACHE_MAX_ENTRIES, CACHE_MAX_SIZE, CACHE_TTL,
    DEFAULT_ROUTE, MAX_TABS, STORAGE_PATH, TAB_DATA_MAX_AGE, TAB_DATA_SAVE_DELAY,
)
from .page_data import PageData
from .storage import JSONFileStorage, Storage
from .tabs import TabRegistry


@dataclass
class TabShell:
    """The components behind one tabbed browsing session."""
    storage: Storage
    memory_cache: SmartCache
    tab_data: TabDataCache
    storage_cache: StorageCache
    tabs: TabRegistry
    cleaner: CacheCleaner

    def page_data(self, data_key: str, fetch_data=None, path: Optional[str] = None) -> PageData:
        """Create a PageData bound to this shell, defaulting to the active tab's path."""
        if path is None:
            active = self.tabs.active_tab
            path = active.path if active else self.tabs.default_route
        return PageData(data_key, self.tab_data, fetch_data=fetch_data, path=path)

    def start(self) -> None:
        self.cleaner.start()

    def close(self) -> None:
        """Stop background work and flush pending saves."""
        self.cleaner.stop()
        self.tab_data.close()


def create_shell(
    storage: Optional[Storage] = None,
    navigator: Optional[Callable[[str], None]] = None,
    clock: Callable[[], float] = time.time,
) -> TabShell:
    """
    Build a TabShell from configuration.

    Args:
        storage: Durable storage (defaults to the configured JSON file)
        navigator: Called with a path whenever the tab registry navigates
        clock: Time source shared by the caches
    """
    if storage is None:
        storage = JSONFileStorage(STORAGE_PATH)

    memory_cache = SmartCache(
        max_size=CACHE_MAX_SIZE,
        max_entries=CACHE_MAX_ENTRIES,
        ttl=CACHE_TTL,
        clock=clock,
    )
    tab_data = TabDataCache(
        storage,
        memory_cache,
        max_age=TAB_DATA_MAX_AGE,
        save_delay=TAB_DATA_SAVE_DELAY,
        clock=clock,
    )
    tabs = TabRegistry(
        storage,
        max_tabs=MAX_TABS,
        default_route=DEFAULT_ROUTE,
        navigator=navigator,
    )
    return TabShell(
        storage=storage,
        memory_cache=memory_cache,
        tab_data=tab_data,
        storage_cache=StorageCache(storage, clock=clock),
        tabs=tabs,
        cleaner=CacheCleaner(memory_cache, interval=CACHE_CLEANUP_INTERVAL),
    )


def print_help():
    """Print welcome message."""
    print("=" * 60)
    print("Tab Browser")
    print("=" * 60)
    print(f"Storage: {STORAGE_PATH}")
    print(f"Max tabs: {MAX_TABS}  Default route: {DEFAULT_ROUTE}")
    print(f"Memory cache: {CACHE_MAX_ENTRIES} entries / {CACHE_MAX_SIZE} bytes, TTL {CACHE_TTL:.0f}s")
    print(f"API: http://127.0.0.1:{API_PORT}")
    print("=" * 60)


def main():
    """Run the tab browser API until interrupted."""
    from .api_server import start_api_server

    print_help()
    shell = create_shell(navigator=lambda path: print(f"Navigate: {path}"))
    shell.start()

    # Start local API server for dashboard clients
    try:
        start_api_server(shell, port=API_PORT)
        print(f"Local API server started on http://127.0.0.1:{API_PORT}\n")
    except Exception as e:
        print(f"Warning: Could not start local API server: {e}\n")

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\n\nInterrupted. Goodbye!")
    finally:
        shell.close()


if __name__ == "__main__":
    main()

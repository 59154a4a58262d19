"""Page-level data loaders backed by the tab caches."""

import threading
from concurrent.futures import Future
from typing import Any, Callable, Optional

from .cache.models import WriteResult
from .cache.smart_cache import SmartCache
from .cache.tab_data import TabDataCache


def _resolve(result: Any) -> Any:
    """Wait for a Future returned by a fetch callback."""
    if isinstance(result, Future):
        return result.result()
    return result


class PageData:
    """
    Loads one piece of page data for the current route.

    On every route change the composite key ``f"{path}-{data_key}"`` is
    looked up in the memory tier, then the durable tier; on a double miss the
    fetch callback runs and its result is written through to both tiers.
    Fetch errors are kept in ``error`` and never retried.
    """

    def __init__(
        self,
        data_key: str,
        tab_data: TabDataCache,
        fetch_data: Optional[Callable[[], Any]] = None,
        path: str = "/",
        autoload: bool = True,
    ):
        """
        Initialize the loader.

        Args:
            data_key: Logical key of the data within the page
            tab_data: Shared tab-scoped cache
            fetch_data: Callable returning the data or a Future of it
            path: Current route path
            autoload: Load immediately, as on mount
        """
        self.data_key = data_key
        self.tab_data = tab_data
        self.fetch_data = fetch_data
        self.path = path

        self.data: Any = None
        self.loading = False
        self.error: Optional[BaseException] = None
        self.last_write: Optional[WriteResult] = None

        if autoload:
            self.load()

    @property
    def cache_key(self) -> str:
        return f"{self.path}-{self.data_key}"

    @property
    def has_cached_data(self) -> bool:
        return self.tab_data.has_tab_data(self.cache_key)

    def navigate(self, path: str) -> Any:
        """Handle a route change and load data for the new path."""
        self.path = path
        return self.load()

    def load(self) -> Any:
        """
        Load data from cache, fetching only on a miss.

        Returns:
            Current data (None if nothing could be loaded)
        """
        if self.fetch_data is None:
            return self.data

        cached = self.tab_data.get_tab_data(self.cache_key)
        if cached is not None:
            self.data = cached
            return self.data

        return self._fetch_and_store()

    def refresh_data(self) -> Any:
        """Fetch fresh data regardless of the cache, then write it through."""
        if self.fetch_data is None:
            return self.data
        return self._fetch_and_store()

    def clear_cache(self) -> None:
        """Drop the loaded data and the cached entry in both tiers."""
        self.data = None
        self.error = None
        self.tab_data.clear_tab_data(self.cache_key)

    def _fetch_and_store(self) -> Any:
        # Capture the key so a navigation during the fetch cannot redirect the write
        key = self.cache_key
        path = self.path
        fetch = self.fetch_data

        def fetch_and_write():
            # Written before the in-flight slot is released so late callers hit the cache
            new_data = _resolve(fetch())
            return new_data, self.tab_data.set_tab_data(key, new_data, path)

        self.loading = True
        self.error = None
        try:
            self.data, self.last_write = self.tab_data.inflight.run(key, fetch_and_write)
        except Exception as e:
            self.error = e
        finally:
            self.loading = False
        return self.data


class SmartData:
    """
    Loads data through the in-memory store only, with optional auto-refresh.
    """

    def __init__(
        self,
        key: str,
        cache: SmartCache,
        fetcher: Optional[Callable[[], Any]] = None,
        refresh_interval: Optional[float] = None,
        autoload: bool = True,
    ):
        self.key = key
        self.cache = cache
        self.fetcher = fetcher
        self.refresh_interval = refresh_interval

        self.data: Any = None
        self.loading = False
        self.error: Optional[BaseException] = None

        self._refresh_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

        if autoload:
            self.load()

    def load(self, force_refresh: bool = False) -> Any:
        if self.fetcher is None:
            return self.data

        if not force_refresh:
            cached = self.cache.get(self.key)
            if cached is not None:
                self.data = cached
                return self.data

        self.loading = True
        self.error = None
        try:
            result = _resolve(self.fetcher())
            self.data = result
            self.cache.set(self.key, result)
        except Exception as e:
            self.error = e
        finally:
            self.loading = False
        return self.data

    def refresh(self) -> Any:
        return self.load(force_refresh=True)

    def clear(self) -> None:
        self.cache.delete(self.key)
        self.data = None

    def start_auto_refresh(self) -> None:
        """Refresh every ``refresh_interval`` seconds in a background thread."""
        if not self.refresh_interval or self._refresh_thread is not None:
            return

        self._stop_event.clear()
        self._refresh_thread = threading.Thread(target=self._refresh_loop, daemon=True)
        self._refresh_thread.start()

    def stop_auto_refresh(self) -> None:
        self._stop_event.set()
        if self._refresh_thread:
            self._refresh_thread.join(timeout=1.0)
        self._refresh_thread = None

    def _refresh_loop(self) -> None:
        while not self._stop_event.wait(self.refresh_interval):
            self.refresh()


__all__ = ["PageData", "SmartData"]

"""Shared fixtures for tab browser tests."""

import pytest

from tab_browser.cache import SmartCache, TabDataCache
from tab_browser.storage import MemoryStorage
from tab_browser.tabs import TabRegistry


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def memory_cache(clock):
    return SmartCache(max_size=10 * 1024 * 1024, max_entries=100, ttl=30 * 60, clock=clock)


@pytest.fixture
def tab_data(storage, memory_cache, clock):
    cache = TabDataCache(storage, memory_cache, max_age=24 * 60 * 60, save_delay=60, clock=clock)
    yield cache
    cache.clear_all_tab_data()


@pytest.fixture
def navigations():
    return []


@pytest.fixture
def registry(storage, navigations):
    return TabRegistry(storage, max_tabs=15, default_route="/dashboard", navigator=navigations.append)

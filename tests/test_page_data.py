"""Tests for the page data loaders."""

import threading
import time
from concurrent.futures import Future

import pytest

from tab_browser.cache import SmartCache, TabDataCache
from tab_browser.page_data import PageData, SmartData


class CountingFetch:
    def __init__(self, value):
        self.value = value
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.value


def test_first_load_fetches_and_writes_through(tab_data, memory_cache):
    fetch = CountingFetch({"rows": [1, 2]})
    page = PageData("products", tab_data, fetch, path="/kho")

    assert fetch.calls == 1
    assert page.data == {"rows": [1, 2]}
    assert page.cache_key == "/kho-products"
    assert page.loading is False
    assert page.error is None
    assert page.last_write.ok
    assert "/kho-products" in memory_cache
    assert page.has_cached_data


def test_second_mount_uses_cache(tab_data):
    fetch = CountingFetch([1])
    PageData("products", tab_data, fetch, path="/kho")
    other = PageData("products", tab_data, fetch, path="/kho")

    assert fetch.calls == 1
    assert other.data == [1]


def test_durable_tier_serves_when_memory_is_empty(tab_data, memory_cache):
    fetch = CountingFetch([1])
    PageData("products", tab_data, fetch, path="/kho")
    memory_cache.clear()

    page = PageData("products", tab_data, fetch, path="/kho")
    assert fetch.calls == 1
    assert page.data == [1]


def test_navigate_uses_new_composite_key(tab_data):
    fetch = CountingFetch("value")
    page = PageData("list", tab_data, fetch, path="/kho")
    page.navigate("/kiemke")

    assert fetch.calls == 2
    assert page.cache_key == "/kiemke-list"
    assert tab_data.has_tab_data("/kho-list")
    assert tab_data.has_tab_data("/kiemke-list")


def test_no_fetch_callback_does_nothing(tab_data):
    page = PageData("products", tab_data, path="/kho")
    assert page.data is None
    assert page.refresh_data() is None
    assert not page.has_cached_data


def test_fetch_error_is_surfaced_without_retry(tab_data):
    calls = []

    def failing():
        calls.append(1)
        raise RuntimeError("api down")

    page = PageData("products", tab_data, failing, path="/kho")

    assert len(calls) == 1
    assert isinstance(page.error, RuntimeError)
    assert page.data is None
    assert page.loading is False
    assert not tab_data.has_tab_data("/kho-products")


def test_refresh_bypasses_cache(tab_data):
    fetch = CountingFetch(1)
    page = PageData("products", tab_data, fetch, path="/kho")
    fetch.value = 2

    assert page.refresh_data() == 2
    assert fetch.calls == 2
    assert tab_data.get_tab_data("/kho-products") == 2


def test_refresh_to_oversized_value_reports_partial_write(storage, clock):
    small_memory = SmartCache(max_size=100, max_entries=10, clock=clock)
    cache = TabDataCache(storage, small_memory, save_delay=60, clock=clock)
    fetch = CountingFetch("small")
    page = PageData("products", cache, fetch, path="/kho")
    assert page.last_write.ok

    fetch.value = "x" * 200
    page.refresh_data()

    assert page.last_write.partial
    assert page.last_write.durable is True
    remounted = PageData("products", cache, fetch, path="/kho")
    assert remounted.data == "x" * 200
    assert fetch.calls == 2
    cache.clear_all_tab_data()


def test_clear_cache_removes_entry_from_both_tiers(tab_data, memory_cache):
    fetch = CountingFetch(1)
    page = PageData("products", tab_data, fetch, path="/kho")

    page.clear_cache()

    assert page.data is None
    assert "/kho-products" not in memory_cache
    assert not tab_data.has_tab_data("/kho-products")

    PageData("products", tab_data, fetch, path="/kho")
    assert fetch.calls == 2


def test_fetch_may_return_a_future(tab_data):
    def fetch():
        future = Future()
        future.set_result({"id": 7})
        return future

    page = PageData("detail", tab_data, fetch, path="/kho")
    assert page.data == {"id": 7}
    assert tab_data.get_tab_data("/kho-detail") == {"id": 7}


def test_concurrent_loads_of_same_key_fetch_once(tab_data):
    started = threading.Event()
    release = threading.Event()
    calls = []

    def slow_fetch():
        calls.append(1)
        started.set()
        release.wait(timeout=2.0)
        return ["rows"]

    pages = []
    first = threading.Thread(target=lambda: pages.append(PageData("rows", tab_data, slow_fetch, path="/kho")))
    first.start()
    assert started.wait(timeout=2.0)

    second = threading.Thread(target=lambda: pages.append(PageData("rows", tab_data, slow_fetch, path="/kho")))
    second.start()
    # Give the follower time to reach the in-flight wait
    time.sleep(0.2)
    assert tab_data.inflight.is_pending("/kho-rows")
    release.set()
    first.join(timeout=2.0)
    second.join(timeout=2.0)

    assert len(calls) == 1
    assert [p.data for p in pages] == [["rows"], ["rows"]]


def test_concurrent_failure_is_shared_with_followers(tab_data):
    from tab_browser.cache import InflightRequests

    inflight = InflightRequests()
    started = threading.Event()
    release = threading.Event()
    errors = []

    def failing():
        started.set()
        release.wait(timeout=2.0)
        raise ValueError("boom")

    def call():
        try:
            inflight.run("k", failing)
        except ValueError as e:
            errors.append(e)

    leader = threading.Thread(target=call)
    leader.start()
    assert started.wait(timeout=2.0)
    follower = threading.Thread(target=call)
    follower.start()
    release.set()
    leader.join(timeout=2.0)
    follower.join(timeout=2.0)

    assert len(errors) == 2
    assert not inflight.is_pending("k")


def test_smart_data_loads_and_caches(memory_cache):
    fetch = CountingFetch({"a": 1})
    smart = SmartData("dashboard", memory_cache, fetch)
    again = SmartData("dashboard", memory_cache, fetch)

    assert fetch.calls == 1
    assert smart.data == again.data == {"a": 1}


def test_smart_data_refresh_and_clear(memory_cache):
    fetch = CountingFetch(1)
    smart = SmartData("dashboard", memory_cache, fetch)
    fetch.value = 2
    assert smart.refresh() == 2
    assert memory_cache.get("dashboard") == 2

    smart.clear()
    assert smart.data is None
    assert "dashboard" not in memory_cache


def test_smart_data_error(memory_cache):
    def failing():
        raise ConnectionError("offline")

    smart = SmartData("dashboard", memory_cache, failing)
    assert isinstance(smart.error, ConnectionError)
    assert smart.loading is False


def test_smart_data_auto_refresh(memory_cache):
    refreshed = threading.Event()
    calls = []

    def fetch():
        calls.append(1)
        if len(calls) > 1:
            refreshed.set()
        return len(calls)

    smart = SmartData("ticker", memory_cache, fetch, refresh_interval=0.01)
    smart.start_auto_refresh()
    try:
        assert refreshed.wait(timeout=2.0)
    finally:
        smart.stop_auto_refresh()
    assert smart.data >= 2


@pytest.mark.parametrize("interval", [None, 0])
def test_smart_data_auto_refresh_disabled_without_interval(memory_cache, interval):
    smart = SmartData("ticker", memory_cache, CountingFetch(1), refresh_interval=interval)
    smart.start_auto_refresh()
    assert smart._refresh_thread is None


def test_fetch_reentering_its_own_key_fails_instead_of_hanging(tab_data):
    nested_errors = []

    def fetch():
        nested = PageData("products", tab_data, lambda: 1, path="/kho", autoload=False)
        nested.refresh_data()
        nested_errors.append(nested.error)
        return 2

    page = PageData("products", tab_data, fetch, path="/kho")

    assert page.data == 2
    assert isinstance(nested_errors[0], RuntimeError)
    assert not tab_data.inflight.is_pending("/kho-products")


def test_inflight_reentry_raises_and_releases_key():
    from tab_browser.cache import InflightRequests

    inflight = InflightRequests()

    def fetch():
        return inflight.run("k", lambda: "inner")

    with pytest.raises(RuntimeError):
        inflight.run("k", fetch)
    assert inflight.pending_keys() == []
    assert inflight.run("k", lambda: "again") == "again"

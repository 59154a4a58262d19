"""Tests for shell wiring and configuration."""

import pytest

from tab_browser.config import Config
from tab_browser.main import create_shell
from tab_browser.storage import JSONFileStorage, MemoryStorage


def test_create_shell_shares_storage_and_clock(clock):
    storage = MemoryStorage()
    shell = create_shell(storage=storage, clock=clock)

    assert shell.tabs.storage is storage
    assert shell.tab_data.storage is storage
    assert shell.tab_data.memory_cache is shell.memory_cache
    assert shell.cleaner.cache is shell.memory_cache


def test_page_data_defaults_to_active_tab_path(clock):
    shell = create_shell(storage=MemoryStorage(), clock=clock)
    shell.tabs.add_tab("Kho", "/kho")

    page = shell.page_data("products", lambda: [1, 2])

    assert page.cache_key == "/kho-products"
    assert shell.tab_data.get_tab_data("/kho-products") == [1, 2]
    shell.close()


def test_page_data_without_tabs_uses_default_route(clock):
    shell = create_shell(storage=MemoryStorage(), clock=clock)
    page = shell.page_data("summary")
    assert page.path == shell.tabs.default_route


def test_shell_survives_restart_with_file_storage(tmp_path, clock):
    path = str(tmp_path / "storage.json")
    shell = create_shell(storage=JSONFileStorage(path), clock=clock)
    shell.start()
    tab = shell.tabs.add_tab("Kho", "/kho")
    shell.tab_data.set_tab_data("/kho-products", {"id": 1}, "/kho")
    shell.close()

    restarted = create_shell(storage=JSONFileStorage(path), clock=clock)

    assert restarted.tabs.active_tab_id == tab.id
    assert restarted.tab_data.get_tab_data("/kho-products") == {"id": 1}


def test_config_reads_environment(monkeypatch):
    monkeypatch.setenv("TAB_BROWSER_MAX_TABS", "8")
    monkeypatch.setenv("TAB_BROWSER_DEFAULT_ROUTE", "/kho")
    config = Config()
    assert config.max_tabs == 8
    assert config.default_route == "/kho"
    assert config.tab_data_max_age == 86400


@pytest.mark.parametrize("name, value", [
    ("TAB_BROWSER_MAX_TABS", "0"),
    ("TAB_BROWSER_DEFAULT_ROUTE", "dashboard"),
    ("TAB_BROWSER_CACHE_MAX_SIZE", "-1"),
    ("TAB_BROWSER_CACHE_TTL", "0"),
    ("TAB_BROWSER_API_PORT", "70000"),
    ("TAB_BROWSER_CACHE_TTL", "90000"),
])
def test_config_rejects_invalid_values(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError):
        Config()


def test_config_accepts_ttl_equal_to_tab_data_max_age(monkeypatch):
    monkeypatch.setenv("TAB_BROWSER_CACHE_TTL", "3600")
    monkeypatch.setenv("TAB_BROWSER_TAB_DATA_MAX_AGE", "3600")
    assert Config().cache_ttl == 3600


def test_main_starts_api_server_and_closes_shell_on_interrupt(monkeypatch, clock, capsys):
    from tab_browser import api_server, main as main_module

    shell = create_shell(storage=MemoryStorage(), clock=clock)
    started = []

    def interrupt(seconds):
        raise KeyboardInterrupt

    monkeypatch.setattr(main_module, "create_shell", lambda **kwargs: shell)
    monkeypatch.setattr(api_server, "start_api_server", lambda s, port: started.append((s, port)))
    monkeypatch.setattr(main_module.time, "sleep", interrupt)

    main_module.main()

    assert started == [(shell, main_module.API_PORT)]
    assert shell.cleaner.running is False
    assert "Goodbye" in capsys.readouterr().out

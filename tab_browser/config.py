"""Configuration for the tab browser."""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Configuration class for the tab browser."""

    def __init__(self):
        """Initialize configuration from environment variables."""
        # Durable storage file (stands in for browser local storage)
        self.storage_path = os.getenv(
            "TAB_BROWSER_STORAGE_PATH",
            os.path.expanduser("~/.tab_browser_storage.json")
        )

        # Tab registry
        self.max_tabs = int(os.getenv("TAB_BROWSER_MAX_TABS", "15"))
        self.default_route = os.getenv("TAB_BROWSER_DEFAULT_ROUTE", "/dashboard")

        # In-memory LRU store
        self.cache_max_size = int(os.getenv("TAB_BROWSER_CACHE_MAX_SIZE", str(10 * 1024 * 1024)))  # 10MB
        self.cache_max_entries = int(os.getenv("TAB_BROWSER_CACHE_MAX_ENTRIES", "100"))
        self.cache_ttl = float(os.getenv("TAB_BROWSER_CACHE_TTL", "1800"))  # 30 minutes
        self.cache_cleanup_interval = float(os.getenv("TAB_BROWSER_CACHE_CLEANUP_INTERVAL", "300"))  # 5 minutes

        # Durable tab-scoped cache
        self.tab_data_max_age = float(os.getenv("TAB_BROWSER_TAB_DATA_MAX_AGE", "86400"))  # 24 hours
        self.tab_data_save_delay = float(os.getenv("TAB_BROWSER_TAB_DATA_SAVE_DELAY", "0.5"))

        # Local API
        self.api_port = int(os.getenv("TAB_BROWSER_API_PORT", "8770"))

        # Validate configuration
        self._validate()

    def _validate(self):
        """Validate configuration values."""
        if self.max_tabs <= 0:
            raise ValueError(f"Max tabs must be positive, got {self.max_tabs}")

        if not self.default_route.startswith("/"):
            raise ValueError(
                f"Invalid default route '{self.default_route}'. Must start with '/'"
            )

        if self.cache_max_size <= 0:
            raise ValueError(f"Cache max size must be positive, got {self.cache_max_size}")

        if self.cache_max_entries <= 0:
            raise ValueError(f"Cache max entries must be positive, got {self.cache_max_entries}")

        for name in ("cache_ttl", "cache_cleanup_interval", "tab_data_max_age"):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

        # Memory hits are not re-checked against the durable max age
        if self.cache_ttl > self.tab_data_max_age:
            raise ValueError(
                f"Cache TTL ({self.cache_ttl}s) must not exceed tab data max age ({self.tab_data_max_age}s)"
            )

        if self.tab_data_save_delay < 0:
            raise ValueError(f"Save delay must not be negative, got {self.tab_data_save_delay}")

        if not 0 < self.api_port < 65536:
            raise ValueError(f"Invalid API port {self.api_port}")


# Create a global config instance
_config = Config()

# Expose configuration values as module-level variables
STORAGE_PATH = _config.storage_path
MAX_TABS = _config.max_tabs
DEFAULT_ROUTE = _config.default_route
CACHE_MAX_SIZE = _config.cache_max_size
CACHE_MAX_ENTRIES = _config.cache_max_entries
CACHE_TTL = _config.cache_ttl
CACHE_CLEANUP_INTERVAL = _config.cache_cleanup_interval
TAB_DATA_MAX_AGE = _config.tab_data_max_age
TAB_DATA_SAVE_DELAY = _config.tab_data_save_delay
API_PORT = _config.api_port

__all__ = [
    "Config",
    "STORAGE_PATH",
    "MAX_TABS",
    "DEFAULT_ROUTE",
    "CACHE_MAX_SIZE",
    "CACHE_MAX_ENTRIES",
    "CACHE_TTL",
    "CACHE_CLEANUP_INTERVAL",
    "TAB_DATA_MAX_AGE",
    "TAB_DATA_SAVE_DELAY",
    "API_PORT",
]

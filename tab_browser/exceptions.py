"""Custom exception classes for the tab browser."""


class TabBrowserError(Exception):
    """Base exception for tab browser errors."""
    pass


class StorageError(TabBrowserError):
    """Exception raised for durable storage errors."""
    pass


class StorageReadError(StorageError):
    """Exception raised when durable storage cannot be read or parsed."""
    pass


class StorageWriteError(StorageError):
    """Exception raised when durable storage cannot be written."""
    pass


class StorageQuotaError(StorageWriteError):
    """Exception raised when a write would exceed the storage quota."""
    pass


class CacheError(TabBrowserError):
    """Exception raised for cache errors."""
    pass


class CacheSerializationError(CacheError):
    """Exception raised when a value cannot be serialized for caching."""
    pass


class TabError(TabBrowserError):
    """Exception raised for tab registry errors."""
    pass


class TabNotFoundError(TabError):
    """Exception raised when a tab is not found."""
    pass

"""Helper utilities for working with a SmartCache."""

import functools
import json
import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, Union

from .smart_cache import SmartCache


def prefetch_cache(cache: SmartCache, key: str, fetcher: Callable[[], Any]) -> bool:
    """
    Fetch a value and store it in the cache ahead of use.

    Errors from the fetcher are printed, not raised.

    Returns:
        True if the value was fetched and stored
    """
    try:
        data = fetcher()
    except Exception as e:
        print(f"Prefetch cache failed for key: {key}: {e}")
        return False
    return cache.set(key, data)


def batch_prefetch(
    cache: SmartCache,
    items: Iterable[Tuple[str, Callable[[], Any]]],
    max_workers: int = 5,
) -> Dict[str, bool]:
    """
    Prefetch several keys concurrently.

    Args:
        cache: Target cache
        items: (key, fetcher) pairs
        max_workers: Thread pool size

    Returns:
        Dictionary mapping key to whether it was stored
    """
    results: Dict[str, bool] = {}
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            executor.submit(prefetch_cache, cache, key, fetcher): key
            for key, fetcher in items
        }
        for future in as_completed(futures):
            results[futures[future]] = future.result()
    return results


def invalidate_pattern(cache: SmartCache, pattern: Union[str, re.Pattern]) -> int:
    """
    Delete every key containing a substring or matching a compiled regex.

    Returns:
        Number of keys removed
    """
    if isinstance(pattern, str):
        matches = lambda key: pattern in key
    else:
        matches = lambda key: pattern.search(key) is not None

    removed = 0
    for key in cache.keys():
        if matches(key) and cache.delete(key):
            removed += 1
    return removed


def create_cache_key(base: str, params: Optional[Dict[str, Any]] = None) -> str:
    """
    Build a cache key from a base and query parameters.

    Examples:
        create_cache_key("/kho") -> "/kho"
        create_cache_key("/kho", {"page": 2, "q": "a"}) -> '/kho?page=2&q="a"'
    """
    if not params:
        return base

    parts = [
        f"{name}={json.dumps(params[name], ensure_ascii=False, separators=(',', ':'))}"
        for name in sorted(params)
    ]
    return f"{base}?{'&'.join(parts)}"


def get_cache_age(cache: SmartCache, key: str, now: Optional[float] = None) -> Optional[float]:
    """Seconds since the entry was created, or None if absent."""
    entry = cache.peek(key)
    if entry is None:
        return None
    if now is None:
        now = cache.now()
    return now - entry.timestamp


def is_cache_valid(cache: SmartCache, key: str, max_age: Optional[float] = None) -> bool:
    """True if the key is present and, when max_age is given, younger than it."""
    age = get_cache_age(cache, key)
    if age is None:
        return False
    if max_age:
        return age < max_age
    return True


def with_cache(cache: SmartCache, get_key: Callable[..., str]):
    """
    Decorator caching a function's result under a key derived from its arguments.

    Usage:
        @with_cache(cache, lambda warehouse_id: f"warehouse-{warehouse_id}")
        def load_warehouse(warehouse_id): ...
    """
    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            key = get_key(*args, **kwargs)
            cached = cache.get(key)
            if cached is not None:
                return cached

            result = fn(*args, **kwargs)
            cache.set(key, result)
            return result
        return wrapper
    return decorator


__all__ = [
    "prefetch_cache",
    "batch_prefetch",
    "invalidate_pattern",
    "create_cache_key",
    "get_cache_age",
    "is_cache_valid",
    "with_cache",
]

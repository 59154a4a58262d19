"""Coalescing of concurrent fetches for the same cache key."""

import threading
from concurrent.futures import Future
from typing import Any, Callable, Dict, List


class InflightRequests:
    """Runs at most one fetch per key at a time; concurrent callers share its outcome."""

    def __init__(self):
        self._pending: Dict[str, Future] = {}
        # Thread ident of the caller running each pending fetch
        self._leaders: Dict[str, int] = {}
        self._lock = threading.Lock()

    def run(self, key: str, fetch: Callable[[], Any]) -> Any:
        """
        Run a fetch for a key, or wait for the one already running.

        The first caller for a key runs ``fetch`` on its own thread; callers
        arriving while it runs block until it finishes and receive the same
        result, or have the same exception raised.

        Args:
            key: Cache key identifying the request
            fetch: Zero-argument callable producing the value

        Returns:
            Value produced by the fetch

        Raises:
            RuntimeError: If ``fetch`` requests its own key again on the same
                thread, which would otherwise wait on itself forever
        """
        with self._lock:
            future = self._pending.get(key)
            leader = future is None
            if leader:
                future = Future()
                self._pending[key] = future
                self._leaders[key] = threading.get_ident()
            elif self._leaders.get(key) == threading.get_ident():
                raise RuntimeError(f"Fetch for '{key}' re-entered itself on the same thread")

        if not leader:
            return future.result()

        try:
            result = fetch()
        except BaseException as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(result)
            return result
        finally:
            with self._lock:
                self._pending.pop(key, None)
                self._leaders.pop(key, None)

    def is_pending(self, key: str) -> bool:
        with self._lock:
            return key in self._pending

    def pending_keys(self) -> List[str]:
        with self._lock:
            return list(self._pending.keys())

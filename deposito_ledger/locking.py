"""
Keyed Lock Arena

One mutual-exclusion lock per entity key ("account:7", "deposito_type:2",
...). Operations on different keys never contend with each other.
"""

import threading
from contextlib import contextmanager, ExitStack
from typing import Dict, Iterable

from .exceptions import ConcurrencyConflictError


def account_key(account_id: int) -> str:
    return f"account:{account_id}"


def customer_key(customer_id: int) -> str:
    return f"customer:{customer_id}"


def deposito_type_key(deposito_type_id: int) -> str:
    return f"deposito_type:{deposito_type_id}"


class LockArena:
    """Lazily created per-key locks with bounded acquisition time"""

    def __init__(self, timeout_seconds: float = 5.0):
        self.timeout_seconds = timeout_seconds
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: str):
        """
        Hold the lock for one key

        Raises:
            ConcurrencyConflictError: If the lock is not acquired within the timeout
        """
        lock = self._lock_for(key)
        if not lock.acquire(timeout=self.timeout_seconds):
            raise ConcurrencyConflictError(
                f"Timed out after {self.timeout_seconds}s waiting for {key}"
            )
        try:
            yield
        finally:
            lock.release()

    @contextmanager
    def hold_all(self, keys: Iterable[str]):
        """Hold several locks, acquired in the order given"""
        with ExitStack() as stack:
            seen = set()
            for key in keys:
                if key in seen:
                    continue
                seen.add(key)
                stack.enter_context(self.hold(key))
            yield

    def is_held(self, key: str) -> bool:
        """Check whether a key is currently locked (diagnostics only)"""
        with self._guard:
            lock = self._locks.get(key)
        return lock is not None and lock.locked()

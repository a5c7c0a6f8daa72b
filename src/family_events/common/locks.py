"""Per-key mutual exclusion for request handlers running in the threadpool."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class IdentityLocks:
    """Hand out one ``threading.Lock`` per identity key.

    Locks are created lazily and dropped again once no request holds or waits
    on them, so the registry does not grow with every email ever seen.
    """

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._waiters: dict[str, int] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._registry_lock:
            lock = self._locks.setdefault(key, threading.Lock())
            self._waiters[key] = self._waiters.get(key, 0) + 1
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._registry_lock:
                self._waiters[key] -= 1
                if not self._waiters[key]:
                    del self._waiters[key]
                    del self._locks[key]

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)


__all__ = ["IdentityLocks"]

"""Keyed mutual exclusion for the redemption critical section."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Hashable, Iterator


class LockRegistry:
    """Hand out one lock per key, dropping it when nobody holds or waits.

    Keys are arbitrary hashables; the registry only grows with the number of
    keys in use at the same time, not with every receipt ever scanned.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Hashable, threading.Lock] = {}
        self._users: dict[Hashable, int] = {}

    def _acquire_ref(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _release_ref(self, key: Hashable) -> None:
        with self._guard:
            remaining = self._users[key] - 1
            if remaining:
                self._users[key] = remaining
            else:
                del self._users[key]
                del self._locks[key]

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self._acquire_ref(key)
        try:
            with lock:
                yield
        finally:
            self._release_ref(key)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


__all__ = ["LockRegistry"]

"""Per-key mutual exclusion."""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Tuple


class KeyedLocks:
    """Hands out one lock per key, created on demand and dropped when idle.

    Holding the lock for one key never blocks work on another key.
    """

    def __init__(self):
        self._guard = threading.Lock()
        # key -> (lock, number of threads holding or waiting for it)
        self._locks: Dict[str, Tuple[threading.Lock, int]] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """Block until the lock for ``key`` is acquired; release on exit."""
        with self._guard:
            lock, users = self._locks.get(key, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[key] = (lock, users + 1)

        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                _, users = self._locks[key]
                if users <= 1:
                    del self._locks[key]
                else:
                    self._locks[key] = (lock, users - 1)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

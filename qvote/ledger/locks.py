"""Per-key mutual exclusion for ledger writers."""

import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager


class KeyedLock:
    """Hand out one re-entrant lock per key.

    Operations on different keys never block each other; operations on the
    same key are serialised in the order they acquire.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Hashable, threading.RLock] = {}

    def _lock_for(self, key: Hashable) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self._lock_for(key)
        with lock:
            yield

    @contextmanager
    def hold_many(self, keys: list[Hashable]) -> Iterator[None]:
        """Hold several keys at once, acquired in sorted order to avoid deadlock."""
        locks = [self._lock_for(key) for key in sorted(set(keys), key=repr)]
        acquired: list[threading.RLock] = []
        try:
            for lock in locks:
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    def discard(self, predicate) -> None:
        """Forget locks whose key matches ``predicate`` (used when a session is purged)."""
        with self._guard:
            for key in [k for k in self._locks if predicate(k)]:
                del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class SessionGate:
    """Shared/exclusive access per key.

    Writers that only touch their own voter's state enter ``shared``; an
    operation that tears down the whole key (purging a session) enters
    ``exclusive``, which waits for every shared holder to leave and keeps
    new ones out until it is done.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._shared: dict[Hashable, int] = {}
        self._exclusive: set[Hashable] = set()

    @contextmanager
    def shared(self, key: Hashable) -> Iterator[None]:
        with self._cond:
            while key in self._exclusive:
                self._cond.wait()
            self._shared[key] = self._shared.get(key, 0) + 1
        try:
            yield
        finally:
            with self._cond:
                self._shared[key] -= 1
                if not self._shared[key]:
                    del self._shared[key]
                self._cond.notify_all()

    @contextmanager
    def exclusive(self, key: Hashable) -> Iterator[None]:
        with self._cond:
            while key in self._exclusive:
                self._cond.wait()
            self._exclusive.add(key)
            while self._shared.get(key):
                self._cond.wait()
        try:
            yield
        finally:
            with self._cond:
                self._exclusive.discard(key)
                self._cond.notify_all()

    def holders(self, key: Hashable) -> int:
        """Number of shared holders currently inside ``key``."""
        with self._cond:
            return self._shared.get(key, 0)

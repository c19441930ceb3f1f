"""
Process-local keyed locks.

Serializes read-modify-write sections that share a key (one player's stat
submissions, one lineup's slot edits) within a single process. Across
processes the database does the work: the services also take a row lock
(``SELECT ... FOR UPDATE``) and rely on unique constraints, so these locks
only remove the common in-process race before it reaches the database.

Lock order: take the keyed lock first, then open the DB transaction.
"""
from contextlib import contextmanager
from threading import Lock
from typing import Hashable, Iterator, Optional


class KeyedLock:
    """One mutex per key, created on demand and dropped when unused."""

    def __init__(self, name: str):
        self.name = name
        self._guard = Lock()
        self._locks: dict[Hashable, Lock] = {}
        self._waiters: dict[Hashable, int] = {}

    @contextmanager
    def hold(self, key: Hashable, timeout_s: Optional[float] = None) -> Iterator[None]:
        """
        Hold the lock for ``key``.

        Raises:
            TimeoutError: the lock was not acquired within ``timeout_s`` seconds.
        """
        with self._guard:
            lock = self._locks.setdefault(key, Lock())
            self._waiters[key] = self._waiters.get(key, 0) + 1

        acquired = lock.acquire() if timeout_s is None else lock.acquire(timeout=max(0.0, float(timeout_s)))
        try:
            if not acquired:
                raise TimeoutError(f"{self.name} lock for {key!r} not acquired within {timeout_s}s")
            yield
        finally:
            if acquired:
                lock.release()
            with self._guard:
                self._waiters[key] -= 1
                if self._waiters[key] == 0:
                    del self._waiters[key]
                    del self._locks[key]

    def active_keys(self) -> int:
        """Number of keys currently held or waited on."""
        with self._guard:
            return len(self._locks)


player_stats_lock = KeyedLock("player_stats")
lineup_lock = KeyedLock("lineup")

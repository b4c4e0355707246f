"""
PixelChads Registry - Concurrency Utilities

This module provides the read-write lock that serialises registry mutations
and gives readers a consistent view, together with lock metrics.
"""

import threading
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from threading import Condition, RLock
from typing import Any, Deque, Dict, Optional, Tuple


class LockType(str, Enum):
    READ = "read"
    WRITE = "write"


class ConcurrencyError(Exception):
    """Raised on lock timeouts and invalid lock usage."""
    pass


@dataclass
class LockMetrics:
    """Counters for first-level acquisitions of a lock.

    Re-entrant acquisitions are not counted.
    """
    acquisitions: int = 0
    contended: int = 0
    waited: float = 0.0
    longest_wait: float = 0.0
    last_acquired_at: Optional[datetime] = None
    recent: Deque[Tuple[str, float, bool]] = field(default_factory=lambda: deque(maxlen=100))

    def record(self, lock_type: LockType, wait: float, contended: bool) -> None:
        self.acquisitions += 1
        self.contended += int(contended)
        self.waited += wait
        self.longest_wait = max(self.longest_wait, wait)
        self.last_acquired_at = datetime.utcnow()
        self.recent.append((lock_type.value, wait, contended))

    @property
    def contention_ratio(self) -> float:
        return self.contended / self.acquisitions if self.acquisitions else 0.0

    @property
    def mean_wait(self) -> float:
        return self.waited / self.acquisitions if self.acquisitions else 0.0


class ReadWriteLock:
    """Re-entrant read-write lock.

    Any number of readers, or a single writer. The writing thread may
    re-acquire the write lock and may take read locks. A thread holding only
    a read lock cannot upgrade to a write lock.
    """

    def __init__(self, name: str = "unnamed", timeout: Optional[float] = 30.0):
        self.name = name
        self.timeout = timeout
        self._lock = RLock()
        self._changed = Condition(self._lock)
        self._readers: Dict[int, int] = {}
        self._writer: Optional[int] = None
        self._write_depth = 0
        self._metrics = LockMetrics()

    @contextmanager
    def read_lock(self):
        if not self.acquire_read():
            raise ConcurrencyError(f"Timed out acquiring read lock on {self.name}")
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_lock(self):
        if not self.acquire_write():
            raise ConcurrencyError(f"Timed out acquiring write lock on {self.name}")
        try:
            yield
        finally:
            self.release_write()

    def _wait(self, predicate, deadline: Optional[float]) -> Optional[bool]:
        """Wait for predicate; returns whether we contended, or None on timeout."""
        contended = False
        while not predicate():
            contended = True
            remaining = None if deadline is None else deadline - time.monotonic()
            if remaining is not None and remaining <= 0:
                return None
            self._changed.wait(timeout=remaining)
        return contended

    def _deadline(self) -> Optional[float]:
        return None if self.timeout is None else time.monotonic() + self.timeout

    def acquire_read(self) -> bool:
        """Take a shared lock; False if the timeout expired."""
        me = threading.get_ident()
        started = time.monotonic()

        with self._lock:
            if self._writer == me or me in self._readers:
                self._readers[me] = self._readers.get(me, 0) + 1
                return True

            contended = self._wait(lambda: self._writer is None, self._deadline())
            if contended is None:
                return False

            self._readers[me] = 1
            self._metrics.record(LockType.READ, time.monotonic() - started, contended)
            return True

    def release_read(self) -> None:
        me = threading.get_ident()

        with self._lock:
            count = self._readers.get(me)
            if not count:
                raise ConcurrencyError(f"{self.name}: release_read without a matching acquire")

            if count == 1:
                del self._readers[me]
            else:
                self._readers[me] = count - 1

            self._changed.notify_all()

    def acquire_write(self) -> bool:
        """Take the exclusive lock; False if the timeout expired."""
        me = threading.get_ident()
        started = time.monotonic()

        with self._lock:
            if self._writer == me:
                self._write_depth += 1
                return True

            if me in self._readers:
                raise ConcurrencyError("Cannot upgrade a read lock to a write lock")

            contended = self._wait(
                lambda: self._writer is None and not self._readers,
                self._deadline()
            )
            if contended is None:
                return False

            self._writer = me
            self._write_depth = 1
            self._metrics.record(LockType.WRITE, time.monotonic() - started, contended)
            return True

    def release_write(self) -> None:
        me = threading.get_ident()

        with self._lock:
            if self._writer != me:
                raise ConcurrencyError(f"{self.name}: release_write by a thread that is not the writer")

            self._write_depth -= 1
            if self._write_depth == 0:
                self._writer = None
                self._changed.notify_all()

    def held_by_current_thread(self) -> bool:
        with self._lock:
            return self._writer == threading.get_ident()

    def get_metrics(self) -> Dict[str, Any]:
        with self._lock:
            stats = self._metrics
            return {
                'name': self.name,
                'readers': sum(self._readers.values()),
                'writer_active': self._writer is not None,
                'acquisition_count': stats.acquisitions,
                'contention_count': stats.contended,
                'contention_ratio': stats.contention_ratio,
                'mean_wait': stats.mean_wait,
                'longest_wait': stats.longest_wait,
                'last_acquisition': stats.last_acquired_at,
            }

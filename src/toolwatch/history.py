"""Fixed-capacity rolling history of samples."""

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from toolwatch.models import HistorySample
from toolwatch.settings import MAX_SAMPLES


class RWLock:
    """Readers share the lock with each other; a writer holds it alone."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            # Waiting writers go first so a stream of readers can't starve them
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class RingBuffer:
    """
    Circular buffer of HistorySamples with chronological read-out.

    Storage is a preallocated list indexed by a write cursor. Once the buffer
    is full the cursor points at the oldest sample, which the next ``add``
    overwrites.
    """

    def __init__(self, capacity: int = MAX_SAMPLES) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._data: list[HistorySample | None] = [None] * capacity
        self._head = 0
        self._count = 0
        self._lock = RWLock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def count(self) -> int:
        """Number of occupied slots."""
        with self._lock.read_locked():
            return self._count

    def __len__(self) -> int:
        return self.count

    def add(self, sample: HistorySample) -> None:
        """Append ``sample``, evicting the oldest one when full."""
        with self._lock.write_locked():
            self._data[self._head] = sample
            self._head = (self._head + 1) % self._capacity
            if self._count < self._capacity:
                self._count += 1

    def get_all(self) -> list[HistorySample]:
        """All samples, oldest first."""
        with self._lock.read_locked():
            if self._count < self._capacity:
                items = self._data[: self._count]
            else:
                items = self._data[self._head :] + self._data[: self._head]
        return list(items)

    def get_last(self, n: int) -> list[HistorySample]:
        """The ``n`` most recent samples, oldest first; fewer if not available."""
        if n <= 0:
            return []
        return self.get_all()[-n:]

    def clear(self) -> None:
        """Drop all samples, keeping the backing storage allocated."""
        with self._lock.write_locked():
            self._head = 0
            self._count = 0

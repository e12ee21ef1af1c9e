"""Per-process CPU percentage estimation from tick counters."""

import threading
import time
from collections.abc import Callable, Mapping

from toolwatch.models import CpuCounterPair
from toolwatch.reader import DEFAULT_CLOCK_TICKS

MIN_ELAPSED_SECONDS = 0.1


def clamp_percent(value: float) -> float:
    """Clamp a percentage into [0, 100]."""
    return max(0.0, min(100.0, value))


class CpuEstimator:
    """
    Converts CPU tick counter deltas between polls into percentages.

    Holds the previous poll's counters for every tracked pid plus the poll
    timestamp. After each poll the stored map is replaced wholesale by the
    counters seen in that poll, so pids that were not observed are dropped
    and the next deltas are always against the immediately preceding poll.
    """

    def __init__(
        self,
        clock_ticks: int = DEFAULT_CLOCK_TICKS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the CpuEstimator.

        Args:
            clock_ticks: Counter ticks per second of CPU time.
            clock: Wall-clock source in seconds. The first poll measures its
                elapsed time from construction.
        """
        if clock_ticks <= 0:
            raise ValueError(f"clock_ticks must be positive, got {clock_ticks}")
        self._clock_ticks = clock_ticks
        self._clock = clock
        self._lock = threading.Lock()
        self._previous: dict[int, CpuCounterPair] = {}
        self._previous_poll = clock()

    @property
    def clock_ticks(self) -> int:
        """Ticks per second used for conversion."""
        return self._clock_ticks

    @property
    def tracked_pids(self) -> frozenset[int]:
        """Pids whose counters were recorded by the last poll."""
        with self._lock:
            return frozenset(self._previous)

    def elapsed_since_last(self, now: float) -> float:
        """Seconds since the previous poll, floored to MIN_ELAPSED_SECONDS."""
        with self._lock:
            return self._elapsed_since_last(now)

    def estimate(self, pid: int, counters: CpuCounterPair, elapsed: float) -> float:
        """
        Estimate CPU percentage of ``pid`` over the last ``elapsed`` seconds.

        Returns 0.0 when the pid has no previous counters. A negative delta
        (counter wrap, inconsistent read) clamps to 0 and anything above a
        full core clamps to 100.
        """
        with self._lock:
            return self._estimate(pid, counters, elapsed)

    def update(self, current: Mapping[int, CpuCounterPair], now: float) -> None:
        """Replace the tracked counters with ``current`` and stamp the poll."""
        with self._lock:
            self._replace(current, now)

    def poll(
        self,
        current: Mapping[int, CpuCounterPair],
        now: float | None = None,
    ) -> dict[int, float]:
        """
        Estimate every pid in ``current`` and then replace the stored state.

        The whole read-modify-write happens under the estimator lock.
        """
        with self._lock:
            if now is None:
                now = self._clock()
            elapsed = self._elapsed_since_last(now)
            percents = {
                pid: self._estimate(pid, counters, elapsed)
                for pid, counters in current.items()
            }
            self._replace(current, now)
        return percents

    def reset(self) -> None:
        """Forget all tracked counters; the next poll starts from scratch."""
        with self._lock:
            self._previous = {}
            self._previous_poll = self._clock()

    # Callers must hold self._lock

    def _elapsed_since_last(self, now: float) -> float:
        return max(MIN_ELAPSED_SECONDS, now - self._previous_poll)

    def _estimate(self, pid: int, counters: CpuCounterPair, elapsed: float) -> float:
        prev = self._previous.get(pid)
        if prev is None:
            return 0.0
        elapsed = max(MIN_ELAPSED_SECONDS, elapsed)
        delta_ticks = (counters.user - prev.user) + (counters.system - prev.system)
        percent = (delta_ticks / self._clock_ticks / elapsed) * 100.0
        return clamp_percent(percent)

    def _replace(self, current: Mapping[int, CpuCounterPair], now: float) -> None:
        self._previous = dict(current)
        self._previous_poll = now

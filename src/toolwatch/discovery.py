"""Discovery and display naming of tool instances."""

import logging
import posixpath
from collections import Counter
from collections.abc import Callable, Iterable

import psutil

from toolwatch.estimator import CpuEstimator
from toolwatch.models import ProcessRecord
from toolwatch.reader import RawSnapshot, read_snapshot

log = logging.getLogger(__name__)

DEFAULT_TARGET = "claude"


class DiscoveryError(RuntimeError):
    """The process table itself could not be enumerated."""


def ordinal(n: int) -> str:
    """English ordinal of ``n`` as used in name suffixes: 2nd, 3rd, 4th, ..."""
    if n == 1:
        return "1st"
    if n == 2:
        return "2nd"
    if n == 3:
        return "3rd"
    return f"{n}th"


def base_name(working_dir: str, fallback: str = DEFAULT_TARGET) -> str:
    """Last path segment of ``working_dir``, or ``fallback`` if it was unreadable."""
    if not working_dir:
        return fallback
    stripped = working_dir.rstrip("/")
    if not stripped:
        return "/"
    return posixpath.basename(stripped)


def assign_names(base_names: Iterable[str]) -> list[str]:
    """
    Disambiguate display names in order.

    The first occurrence of a base name keeps it; the Nth gets an ordinal
    suffix, e.g. ``proj``, ``proj (2nd)``, ``proj (3rd)``, ``proj (4th)``.
    """
    seen: Counter[str] = Counter()
    names = []
    for name in base_names:
        seen[name] += 1
        count = seen[name]
        names.append(name if count == 1 else f"{name} ({ordinal(count)})")
    return names


class ProcessDiscovery:
    """
    Finds every running instance of ``target_name`` and builds ProcessRecords.

    Works in two passes: first collect raw readings of all matching processes,
    then sort them by start time (pid breaks ties) and derive CPU percentages
    and names from that ordering. Names are recomputed on every poll, so when
    an older same-named process exits the suffixes of the survivors shift.
    """

    def __init__(
        self,
        estimator: CpuEstimator,
        target_name: str = DEFAULT_TARGET,
        reader: Callable[[int, str, int], RawSnapshot] = read_snapshot,
        pids: Callable[[], Iterable[int]] | None = None,
    ) -> None:
        self._estimator = estimator
        self._target_name = target_name
        self._reader = reader
        self._pids = pids

    @property
    def target_name(self) -> str:
        return self._target_name

    def list_processes(self) -> list[ProcessRecord]:
        """
        Poll the process table once.

        Raises:
            DiscoveryError: the process table could not be listed.
        """
        try:
            candidates = list(self._pids() if self._pids else psutil.pids())
        except (OSError, psutil.Error) as exc:
            raise DiscoveryError(f"failed to enumerate processes: {exc}") from exc

        raw = self._collect(candidates)
        raw.sort(key=lambda snap: (snap.start_time, snap.pid))

        percents = self._estimator.poll({snap.pid: snap.counters for snap in raw})
        names = assign_names(
            base_name(snap.working_dir, self._target_name) for snap in raw
        )

        return [
            ProcessRecord(
                pid=snap.pid,
                name=name,
                working_dir=snap.working_dir,
                cpu_percent=percents[snap.pid],
                memory_mb=snap.memory_mb,
                start_time=snap.start_time,
            )
            for snap, name in zip(raw, names)
        ]

    def _collect(self, candidates: Iterable[int]) -> list[RawSnapshot]:
        raw: list[RawSnapshot] = []
        for pid in candidates:
            snap = self._reader(pid, self._target_name, self._estimator.clock_ticks)
            if snap.matched:
                raw.append(snap)
        log.debug("found %d %s process(es)", len(raw), self._target_name)
        return raw

"""One-shot extraction of process metadata for toolwatch."""

import logging
import math
from dataclasses import dataclass, field

import psutil

from toolwatch.models import CpuCounterPair

log = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024
DEFAULT_CLOCK_TICKS = 100  # USER_HZ on Linux

# Everything a single process can throw at us while it is being read
READ_ERRORS = (
    psutil.NoSuchProcess,
    psutil.AccessDenied,
    psutil.ZombieProcess,
    OSError,
    ValueError,
)


@dataclass(slots=True, frozen=True)
class RawSnapshot:
    """Unprocessed per-process reading, before CPU estimation and naming."""

    pid: int
    matched: bool
    working_dir: str = ""
    counters: CpuCounterPair = field(default_factory=CpuCounterPair)
    memory_mb: float = 0.0
    start_time: int = 0


def to_ticks(seconds: float, clock_ticks: int = DEFAULT_CLOCK_TICKS) -> int:
    """Convert accumulated CPU seconds back into clock ticks."""
    try:
        value = float(seconds)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(value) or value < 0:
        return 0
    return int(round(value * clock_ticks))


def read_snapshot(
    pid: int,
    target_name: str,
    clock_ticks: int = DEFAULT_CLOCK_TICKS,
) -> RawSnapshot:
    """
    Read identity, working directory, CPU counters, memory and start time.

    Identity is confirmed first by comparing the process name (``comm`` on
    Linux) to ``target_name``; non-matching or unreadable processes come back
    with ``matched=False`` and nothing else filled in. Every other field falls
    back to zero/empty on failure, so a process vanishing mid-read never
    raises.
    """
    try:
        proc = psutil.Process(pid)
    except READ_ERRORS as exc:
        log.debug("pid %d vanished before it could be read: %s", pid, exc)
        return RawSnapshot(pid=pid, matched=False)

    try:
        with proc.oneshot():
            try:
                name = proc.name()
            except READ_ERRORS as exc:
                log.debug("pid %d: cannot read name: %s", pid, exc)
                return RawSnapshot(pid=pid, matched=False)

            if name != target_name:
                return RawSnapshot(pid=pid, matched=False)

            return RawSnapshot(
                pid=pid,
                matched=True,
                working_dir=_read_cwd(proc),
                counters=_read_counters(proc, clock_ticks),
                memory_mb=_read_memory_mb(proc),
                start_time=_read_start_time(proc),
            )
    except READ_ERRORS as exc:
        # oneshot() itself may fail to prime its cache on a dying process
        log.debug("pid %d: oneshot read failed: %s", pid, exc)
        return RawSnapshot(pid=pid, matched=False)


def _read_cwd(proc: psutil.Process) -> str:
    try:
        return proc.cwd() or ""
    except READ_ERRORS as exc:
        log.debug("pid %d: cannot read cwd: %s", proc.pid, exc)
        return ""


def _read_counters(proc: psutil.Process, clock_ticks: int) -> CpuCounterPair:
    try:
        times = proc.cpu_times()
    except READ_ERRORS as exc:
        log.debug("pid %d: cannot read cpu times: %s", proc.pid, exc)
        return CpuCounterPair()
    return CpuCounterPair(
        user=to_ticks(times.user, clock_ticks),
        system=to_ticks(times.system, clock_ticks),
    )


def _read_memory_mb(proc: psutil.Process) -> float:
    try:
        rss = proc.memory_info().rss
    except READ_ERRORS as exc:
        log.debug("pid %d: cannot read memory: %s", proc.pid, exc)
        return 0.0
    if not rss or rss < 0:
        return 0.0
    return rss / BYTES_PER_MB


def _read_start_time(proc: psutil.Process) -> int:
    try:
        created = float(proc.create_time())
    except READ_ERRORS as exc:
        log.debug("pid %d: cannot read start time: %s", proc.pid, exc)
        return 0
    except TypeError:
        return 0
    if not math.isfinite(created) or created < 0:
        return 0
    return int(created)

"""Data models for toolwatch."""

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class CpuCounterPair:
    """Accumulated user and kernel CPU time of one process, in clock ticks."""

    user: int = 0
    system: int = 0

    @property
    def total(self) -> int:
        return self.user + self.system


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Immutable view of one tool instance at poll time."""

    pid: int
    name: str
    working_dir: str  # Empty if unreadable
    cpu_percent: float  # 0.0 - 100.0
    memory_mb: float
    start_time: int  # Seconds since epoch, ordering only


@dataclass(slots=True, frozen=True)
class ProcessSample:
    """Compact per-process entry stored in history."""

    pid: int
    name: str
    cpu_percent: float
    memory_mb: float

    @classmethod
    def from_record(cls, record: ProcessRecord) -> "ProcessSample":
        return cls(
            pid=record.pid,
            name=record.name,
            cpu_percent=record.cpu_percent,
            memory_mb=record.memory_mb,
        )


@dataclass(slots=True, frozen=True)
class HistorySample:
    """One point of the rolling history window."""

    timestamp: int
    temperature: float
    processes: tuple[ProcessSample, ...] = ()

"""Shared fixtures: a fake process table standing in for psutil."""

import logging
from contextlib import contextmanager
from types import SimpleNamespace

import psutil
import pytest


class FakeProcess:
    """Minimal psutil.Process lookalike with controllable readings."""

    def __init__(
        self,
        pid: int,
        name: str = "claude",
        cwd: str = "/home/user/demo",
        user: float = 0.0,
        system: float = 0.0,
        rss: int = 0,
        create_time: float = 1_700_000_000.0,
        errors: dict[str, Exception] | None = None,
    ) -> None:
        self.pid = pid
        self._name = name
        self._cwd = cwd
        self.user = user
        self.system = system
        self.rss = rss
        self._create_time = create_time
        self.errors = errors or {}

    def _maybe_raise(self, attr: str) -> None:
        if attr in self.errors:
            raise self.errors[attr]

    @contextmanager
    def oneshot(self):
        self._maybe_raise("oneshot")
        yield

    def name(self) -> str:
        self._maybe_raise("name")
        return self._name

    def cwd(self) -> str:
        self._maybe_raise("cwd")
        return self._cwd

    def cpu_times(self):
        self._maybe_raise("cpu_times")
        return SimpleNamespace(user=self.user, system=self.system)

    def memory_info(self):
        self._maybe_raise("memory_info")
        return SimpleNamespace(rss=self.rss)

    def create_time(self) -> float:
        self._maybe_raise("create_time")
        return self._create_time


class FakeProcessTable:
    """Dict of pid -> FakeProcess, patched in place of psutil.Process/pids."""

    def __init__(self) -> None:
        self.processes: dict[int, FakeProcess] = {}
        self.pids_error: Exception | None = None

    def add(self, pid: int, **kwargs) -> FakeProcess:
        proc = FakeProcess(pid, **kwargs)
        self.processes[pid] = proc
        return proc

    def remove(self, pid: int) -> None:
        del self.processes[pid]

    def lookup(self, pid: int) -> FakeProcess:
        try:
            return self.processes[pid]
        except KeyError:
            raise psutil.NoSuchProcess(pid) from None

    def pids(self) -> list[int]:
        if self.pids_error is not None:
            raise self.pids_error
        return sorted(self.processes)


@pytest.fixture
def proc_table(monkeypatch) -> FakeProcessTable:
    """Replace psutil's process access with an in-memory table."""
    table = FakeProcessTable()
    monkeypatch.setattr(psutil, "Process", table.lookup)
    monkeypatch.setattr(psutil, "pids", table.pids)
    return table


@pytest.fixture(autouse=True)
def _restore_package_logger():
    """Undo setup_logging so caplog keeps seeing toolwatch records."""
    logger = logging.getLogger("toolwatch")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)
    logger.propagate = propagate


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, now: float = 1_700_000_100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()

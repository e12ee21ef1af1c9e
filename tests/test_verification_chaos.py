"""Verification Test: Chaos Monkey - instances exiting mid-poll.

Spawns forked children (which share this interpreter's process name, so they
count as instances of the watched tool), terminates half of them while
sampling, and checks that polls never fail and estimator state follows the
survivors.
"""

import multiprocessing
import random
import sys
import time

import psutil
import pytest

from toolwatch.monitor import ToolMonitor
from toolwatch.settings import MonitorConfig

pytestmark = pytest.mark.skipif(
    not sys.platform.startswith("linux"), reason="needs fork and /proc"
)


def dummy_worker(duration: float = 30.0) -> None:
    """A dummy worker process that sleeps for a given duration."""
    try:
        time.sleep(duration)
    except (KeyboardInterrupt, SystemExit):
        pass


@pytest.fixture
def children():
    """Forked sleepers named like the test interpreter."""
    ctx = multiprocessing.get_context("fork")
    processes = []
    try:
        for _ in range(20):
            p = ctx.Process(target=dummy_worker, args=(30.0,))
            p.start()
            processes.append(p)
        yield processes
    finally:
        for p in processes:
            if p.is_alive():
                p.terminate()
        for p in processes:
            p.join(timeout=1.0)


class TestChaosMonkey:
    """Chaos Monkey verification suite tests."""

    def test_polls_survive_process_termination(self, children):
        """Test processes dying between and during polls never break a poll."""
        target = psutil.Process().name()
        monitor = ToolMonitor(MonitorConfig(target_name=target, interval=1.0))

        first = monitor.list_processes()
        pids = {r.pid for r in first}
        assert {p.pid for p in children} <= pids

        victims = random.sample(children, 10)
        for p in victims:
            p.terminate()
            # Poll while terminations are still landing
            records = monitor.list_processes()
            assert all(0.0 <= r.cpu_percent <= 100.0 for r in records)
        for p in victims:
            p.join(timeout=2.0)

        records = monitor.list_processes()
        seen = {r.pid for r in records}
        assert not seen & {p.pid for p in victims}
        assert {p.pid for p in children if p not in victims} <= seen

    def test_names_stay_unique(self, children):
        """Test every discovered instance gets a distinct display name."""
        target = psutil.Process().name()
        monitor = ToolMonitor(MonitorConfig(target_name=target))

        records = monitor.list_processes()
        names = [r.name for r in records]

        assert len(names) == len(set(names))

    def test_history_keeps_sampling(self, children):
        """Test record_sample keeps producing samples while instances exit."""
        target = psutil.Process().name()
        monitor = ToolMonitor(MonitorConfig(target_name=target, capacity=5))

        for p in children[:8]:
            p.terminate()
            assert monitor.record_sample(temperature=0.0) is not None

        history = monitor.get_history()
        assert len(history) == 5
        assert [s.timestamp for s in history] == sorted(s.timestamp for s in history)

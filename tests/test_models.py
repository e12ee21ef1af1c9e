"""Tests for toolwatch data models."""

import pytest

from toolwatch.models import CpuCounterPair, HistorySample, ProcessRecord, ProcessSample


def make_record(**overrides) -> ProcessRecord:
    fields = dict(
        pid=123,
        name="demo",
        working_dir="/home/user/demo",
        cpu_percent=30.0,
        memory_mb=256.5,
        start_time=1_700_000_000,
    )
    fields.update(overrides)
    return ProcessRecord(**fields)


def test_process_record_creation():
    """Test ProcessRecord dataclass creation."""
    record = make_record()

    assert record.pid == 123
    assert record.name == "demo"
    assert record.working_dir == "/home/user/demo"
    assert record.cpu_percent == 30.0
    assert record.memory_mb == 256.5
    assert record.start_time == 1_700_000_000


def test_process_record_is_frozen():
    """Test that ProcessRecord is immutable (frozen)."""
    record = make_record()

    with pytest.raises(AttributeError):
        record.cpu_percent = 99.0


def test_process_record_uses_slots():
    """Test that ProcessRecord uses __slots__."""
    assert not hasattr(make_record(), "__dict__")


def test_counter_pair_total():
    """Test CpuCounterPair sums user and kernel ticks."""
    assert CpuCounterPair(user=700, system=300).total == 1000
    assert CpuCounterPair().total == 0


def test_process_sample_from_record():
    """Test the compact history projection keeps id, name, CPU and memory."""
    sample = ProcessSample.from_record(make_record(pid=7, name="proj (2nd)"))

    assert sample == ProcessSample(pid=7, name="proj (2nd)", cpu_percent=30.0, memory_mb=256.5)


def test_history_sample_is_immutable():
    """Test HistorySample is frozen and stores processes as a tuple."""
    sample = HistorySample(
        timestamp=1_700_000_000,
        temperature=55.0,
        processes=(ProcessSample(1, "demo", 1.0, 2.0),),
    )

    assert isinstance(sample.processes, tuple)
    with pytest.raises(AttributeError):
        sample.temperature = 0.0


def test_history_sample_defaults_to_no_processes():
    """Test a sample taken while nothing runs has an empty process tuple."""
    assert HistorySample(timestamp=1, temperature=0.0).processes == ()

"""toolwatch - Textual dashboard and command line entry point."""

import logging
import time
from dataclasses import replace
from enum import Enum
from pathlib import Path
from queue import Empty, Queue

import click
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Footer, Static

from toolwatch.discovery import DiscoveryError
from toolwatch.log_config import setup_logging
from toolwatch.models import HistorySample, ProcessRecord
from toolwatch.monitor import ToolMonitor
from toolwatch.settings import MonitorConfig


class SortKey(Enum):
    """Sort keys for the process table."""

    CPU = "cpu"
    MEM = "mem"
    PID = "pid"
    NAME = "name"


def format_megabytes(size_mb: float) -> str:
    """Format megabytes as a short human-readable string."""
    if size_mb >= 1024:
        return f"{size_mb / 1024:5.1f}G"
    return f"{size_mb:5.1f}M"


def format_span(seconds: float) -> str:
    """Format a duration as MM:SS, or H:MM:SS past an hour."""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def history_span(history: list[HistorySample]) -> float:
    """Seconds covered by a chronological list of samples."""
    if len(history) < 2:
        return 0.0
    return float(history[-1].timestamp - history[0].timestamp)


class HeaderStats(Static):
    """Header widget showing the watched tool, temperature and history."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        min-height: 4;
        padding: 0 1;
        background: $surface;
    }
    """

    def __init__(self, target_name: str, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._target_name = target_name
        self._sample: HistorySample | None = None
        self._samples_held = 0
        self._span_seconds = 0.0

    def on_mount(self) -> None:
        self.update(self._stats_text())

    def update_stats(self, sample: HistorySample, history: list[HistorySample]) -> None:
        """Update the header from the newest sample and the retained history."""
        self._sample = sample
        self._samples_held = len(history)
        self._span_seconds = history_span(history)
        self.update(self._stats_text())

    def _stats_text(self) -> str:
        if self._sample is None:
            return f"Watching [b]{self._target_name}[/b]... waiting for first sample"

        total_cpu = sum(p.cpu_percent for p in self._sample.processes)
        total_mem = sum(p.memory_mb for p in self._sample.processes)
        temp = self._sample.temperature
        temp_str = f"{temp:.1f}°C" if temp > 0 else "n/a"
        return (
            f"Watching [b]{self._target_name}[/b]: "
            f"{len(self._sample.processes)} instance(s)\n"
            f"CPU {total_cpu:5.1f}%  Mem {format_megabytes(total_mem)}  Temp {temp_str}\n"
            f"History: {self._samples_held} samples over {format_span(self._span_seconds)}"
        )


class ProcessTable(Container):
    """Container for the process data table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._sort_key: SortKey = SortKey.CPU
        self._sort_reverse: bool = True

    @property
    def sort_key(self) -> SortKey:
        return self._sort_key

    def cycle_sort(self) -> SortKey:
        """Cycle to the next sort key and return it."""
        keys = list(SortKey)
        self._sort_key = keys[(keys.index(self._sort_key) + 1) % len(keys)]
        self._sort_reverse = self._sort_key in (SortKey.CPU, SortKey.MEM)
        return self._sort_key

    def compose(self) -> ComposeResult:
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"

        table.add_column("PID", key="pid", width=8)
        table.add_column("NAME", key="name", width=24)
        table.add_column("CPU%", key="cpu", width=7)
        table.add_column("MEM", key="mem", width=8)
        table.add_column("STARTED", key="started", width=9)
        table.add_column("CWD", key="cwd")

    def sort_records(self, records: list[ProcessRecord]) -> list[ProcessRecord]:
        """Sort records based on the current sort key."""
        key_func = {
            SortKey.CPU: lambda r: r.cpu_percent,
            SortKey.MEM: lambda r: r.memory_mb,
            SortKey.PID: lambda r: r.pid,
            SortKey.NAME: lambda r: r.name.lower(),
        }
        return sorted(records, key=key_func[self._sort_key], reverse=self._sort_reverse)

    def update_processes(self, records: list[ProcessRecord]) -> None:
        """
        Update the table with new records.

        Rows are cleared and re-added in sorted order; names can change
        between polls, so rows are keyed by pid rather than by name.
        """
        table = self.query_one("#process-table", DataTable)
        table.clear()
        for record in self.sort_records(records):
            table.add_row(*self._cells(record), key=str(record.pid))

    @staticmethod
    def _cells(record: ProcessRecord) -> tuple[str, ...]:
        started = time.strftime("%H:%M:%S", time.localtime(record.start_time))
        return (
            str(record.pid),
            record.name[:24],
            f"{record.cpu_percent:5.1f}",
            format_megabytes(record.memory_mb),
            started,
            record.working_dir or "?",
        )


class ToolwatchApp(App):
    """Live dashboard for the instances of one CLI tool."""

    TITLE = "toolwatch"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        dock: top;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("f6", "sort", "Sort"),
    ]

    def __init__(self, config: MonitorConfig | None = None) -> None:
        super().__init__()
        self._config = config or MonitorConfig()
        self._update_queue: Queue[HistorySample] = Queue()
        self._monitor = ToolMonitor(self._config, update_queue=self._update_queue)
        self.sub_title = f"Watching {self._config.target_name}"

    def compose(self) -> ComposeResult:
        yield HeaderStats(self._config.target_name, id="header-stats")
        yield ProcessTable()
        yield Footer()

    def on_mount(self) -> None:
        self._monitor.start()
        self.set_interval(0.5, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Drain the queue and refresh the UI with the newest sample."""
        sample = None
        while True:
            try:
                sample = self._update_queue.get_nowait()
            except Empty:
                break

        if sample is not None:
            self._update_ui(sample)

    def _update_ui(self, sample: HistorySample) -> None:
        self.query_one("#header-stats", HeaderStats).update_stats(
            sample, self._monitor.get_history()
        )
        self.query_one(ProcessTable).update_processes(self._monitor.latest)

    def action_sort(self) -> None:
        """Cycle through sort keys and re-render the table."""
        table = self.query_one(ProcessTable)
        new_sort_key = table.cycle_sort()
        table.update_processes(self._monitor.latest)
        self.notify(f"Sort: {new_sort_key.value.upper()}")

    def action_quit(self) -> None:
        """Stop sampling, then exit."""
        self._monitor.stop()
        self.exit()


def print_once(config: MonitorConfig) -> int:
    """Poll once and print the records; returns a process exit code."""
    monitor = ToolMonitor(config)
    try:
        records = monitor.list_processes()
    except DiscoveryError as exc:
        click.echo(f"error: {exc}", err=True)
        return 1

    if not records:
        click.echo(f"No {config.target_name} processes found")
        return 0
    for record in records:
        click.echo(
            f"{record.pid:>8}  {record.name:<24}  {record.cpu_percent:5.1f}%  "
            f"{format_megabytes(record.memory_mb)}  {record.working_dir}"
        )
    return 0


@click.command()
@click.option("--target", default=None, help="Process name to watch (default: claude)")
@click.option("--interval", type=float, default=None, help="Seconds between samples (default: 5)")
@click.option("--capacity", type=int, default=None, help="Samples kept in history (default: 360)")
@click.option("--log-level", default="WARNING", show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
@click.option("--log-file", type=click.Path(path_type=Path), default=None,
              help="Also write detailed logs to this file")
@click.option("--once", is_flag=True, help="Print a single poll and exit")
def main(target, interval, capacity, log_level, log_file, once) -> None:
    """Watch running instances of a CLI tool."""
    setup_logging(getattr(logging, log_level.upper()), log_file)

    overrides = {"target_name": target, "interval": interval, "capacity": capacity}
    try:
        config = replace(
            MonitorConfig.from_env(),
            **{k: v for k, v in overrides.items() if v is not None},
        )
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc

    if once:
        raise SystemExit(print_once(config))

    ToolwatchApp(config).run()


if __name__ == "__main__":
    main()

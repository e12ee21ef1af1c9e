"""Sampling engine for toolwatch."""

import logging
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from queue import Queue

from toolwatch.discovery import DiscoveryError, ProcessDiscovery
from toolwatch.estimator import CpuEstimator
from toolwatch.history import RingBuffer
from toolwatch.models import HistorySample, ProcessRecord, ProcessSample
from toolwatch.settings import AlertSettings, MonitorConfig, clamp_interval
from toolwatch.temperature import TemperatureMonitor

log = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class AlertStatus:
    """Outcome of comparing one poll against the alert thresholds."""

    cpu_alert: bool = False
    temp_alert: bool = False
    process_name: str = ""


class ToolMonitor:
    """
    Owns the CPU estimator and the history buffer for one target tool.

    ``list_processes`` and ``record_sample`` can be called directly, or
    ``start`` runs a daemon thread that records a sample every ``interval``
    seconds and pushes it to an optional queue. Polls are serialized by a
    monitor-wide lock so two callers never mutate estimator state at once.
    """

    def __init__(
        self,
        config: MonitorConfig | None = None,
        alerts: AlertSettings | None = None,
        temperature: TemperatureMonitor | None = None,
        update_queue: "Queue[HistorySample] | None" = None,
        discovery: ProcessDiscovery | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the ToolMonitor.

        Args:
            config: Target, interval, capacity and tick rate.
            alerts: Alert thresholds checked after every recorded sample.
            temperature: Source of the primary temperature reading.
            update_queue: Receives every sample the background loop records.
            discovery: Prebuilt discovery; built from ``config`` when omitted.
            clock: Wall-clock source for sample timestamps and CPU deltas.
        """
        self._config = config or MonitorConfig()
        self._alerts = alerts or AlertSettings()
        self._temperature = temperature or TemperatureMonitor()
        self._queue = update_queue
        self._clock = clock
        self._discovery = discovery or ProcessDiscovery(
            CpuEstimator(self._config.clock_ticks, clock=clock),
            target_name=self._config.target_name,
        )
        self._history = RingBuffer(self._config.capacity)
        self._interval = self._config.interval
        self._poll_lock = threading.Lock()
        self._latest: list[ProcessRecord] = []
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def config(self) -> MonitorConfig:
        return self._config

    @property
    def alerts(self) -> AlertSettings:
        return self._alerts

    @property
    def history(self) -> RingBuffer:
        return self._history

    @property
    def interval(self) -> float:
        """Seconds between recorded samples."""
        return self._interval

    @interval.setter
    def interval(self, value: float) -> None:
        self._interval = clamp_interval(value)

    @property
    def latest(self) -> list[ProcessRecord]:
        """Records from the most recent successful poll."""
        return list(self._latest)

    @property
    def is_running(self) -> bool:
        """Check if the sampling thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def list_processes(self) -> list[ProcessRecord]:
        """
        Poll once and return the target's processes ordered by start time.

        Raises:
            DiscoveryError: the process table could not be enumerated.
        """
        with self._poll_lock:
            records = self._discovery.list_processes()
            self._latest = records
        return list(records)

    def record_sample(self, temperature: float | None = None) -> HistorySample | None:
        """
        Poll and append a HistorySample to the history buffer.

        ``temperature`` defaults to the temperature monitor's main reading.
        Returns the stored sample, or None when the poll failed; the failure
        is logged and the buffer is left untouched.
        """
        try:
            records = self.list_processes()
        except DiscoveryError:
            log.exception("Process discovery failed, skipping sample")
            return None

        if temperature is None:
            temperature = self._temperature.get_main_temperature()

        sample = HistorySample(
            timestamp=int(self._clock()),
            temperature=float(temperature),
            processes=tuple(ProcessSample.from_record(r) for r in records),
        )
        self._history.add(sample)
        return sample

    def get_history(self) -> list[HistorySample]:
        """All retained samples, oldest first."""
        return self._history.get_all()

    def get_last(self, n: int) -> list[HistorySample]:
        return self._history.get_last(n)

    def check_alerts(
        self,
        records: Sequence[ProcessRecord | ProcessSample],
        temperature: float,
    ) -> AlertStatus:
        """Compare one poll's processes and temperature against the thresholds."""
        if not self._alerts.alerts_enabled:
            return AlertStatus()

        temp_alert = temperature >= self._alerts.temp_threshold
        for record in records:
            if record.cpu_percent >= self._alerts.cpu_threshold:
                return AlertStatus(
                    cpu_alert=True, temp_alert=temp_alert, process_name=record.name
                )
        return AlertStatus(temp_alert=temp_alert)

    def start(self) -> None:
        """Start the sampling thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="ToolMonitor",
        )
        self._thread.start()
        log.info(
            "Watching %r every %.1fs (keeping %d samples)",
            self._config.target_name,
            self._interval,
            self._history.capacity,
        )

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the sampling thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
            log.info("Stopped watching %r", self._config.target_name)

    def _poll_loop(self) -> None:
        """Main sampling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                self._tick()
            except Exception:
                # Keep sampling; the next tick may well succeed
                log.exception("Unexpected error while sampling")

            self._stop_event.wait(timeout=self._interval)

    def _tick(self) -> None:
        sample = self.record_sample()
        if sample is None:
            return

        status = self.check_alerts(sample.processes, sample.temperature)
        if status.cpu_alert:
            log.warning("ALERT: High CPU usage on process %s", status.process_name)
        if status.temp_alert:
            log.warning("ALERT: High temperature detected (%.1f°C)", sample.temperature)

        if self._queue is not None:
            self._queue.put(sample)

"""Primary temperature reading via psutil sensors."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

import psutil

log = logging.getLogger(__name__)

# Labels checked in order when picking the main CPU temperature
MAIN_SENSOR_PRIORITY = ("Tctl", "Tdie", "Package", "Core 0", "CPU", "temp1")


@dataclass(slots=True, frozen=True)
class Temperature:
    """A single sensor reading in degrees Celsius."""

    label: str
    current: float
    high: float | None = None
    critical: float | None = None


def _default_sensors() -> dict:
    # sensors_temperatures only exists on Linux/FreeBSD builds of psutil
    sensors = getattr(psutil, "sensors_temperatures", None)
    if sensors is None:
        return {}
    return sensors()


class TemperatureMonitor:
    """Reads host temperatures; returns nothing rather than failing."""

    def __init__(self, sensors: Callable[[], dict] = _default_sensors) -> None:
        self._sensors = sensors

    def get_temperatures(self) -> list[Temperature]:
        try:
            groups = self._sensors() or {}
        except (OSError, RuntimeError) as exc:
            log.debug("cannot read temperature sensors: %s", exc)
            return []

        temps = []
        for chip, entries in groups.items():
            for entry in entries:
                label = entry.label or chip
                temps.append(
                    Temperature(
                        label=label,
                        current=float(entry.current),
                        high=entry.high,
                        critical=entry.critical,
                    )
                )
        return temps

    def get_main_temperature(self) -> float:
        """The most CPU-like reading, or 0.0 if there are no sensors."""
        temps = self.get_temperatures()
        for wanted in MAIN_SENSOR_PRIORITY:
            for temp in temps:
                if wanted in temp.label:
                    return temp.current
        if temps:
            return temps[0].current
        return 0.0

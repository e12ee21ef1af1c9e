"""Configuration for toolwatch."""

import logging
import math
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")

HISTORY_DURATION_SECONDS = 30 * 60
SAMPLE_INTERVAL_SECONDS = 5
MAX_SAMPLES = HISTORY_DURATION_SECONDS // SAMPLE_INTERVAL_SECONDS  # 360

MIN_INTERVAL_SECONDS = 1.0

ENV_PREFIX = "TOOLWATCH_"


def clamp_interval(value: float) -> float:
    """Validate a sampling interval, raising it to the one second minimum."""
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"interval must be a finite number, got {value}")
    # No sub-second sampling
    return max(MIN_INTERVAL_SECONDS, value)


@dataclass(slots=True)
class MonitorConfig:
    """What to watch and how often."""

    target_name: str = "claude"
    interval: float = float(SAMPLE_INTERVAL_SECONDS)
    capacity: int = MAX_SAMPLES
    clock_ticks: int = 100

    def __post_init__(self) -> None:
        self.interval = clamp_interval(self.interval)
        if self.capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {self.capacity}")
        if self.clock_ticks < 1:
            raise ValueError(f"clock_ticks must be positive, got {self.clock_ticks}")
        if not self.target_name:
            raise ValueError("target_name must not be empty")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "MonitorConfig":
        """
        Build a config from ``TOOLWATCH_*`` environment variables.

        Malformed values are logged and replaced by the defaults.
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            target_name=env.get(f"{ENV_PREFIX}TARGET") or defaults.target_name,
            interval=_env_value(env, "INTERVAL", clamp_interval, defaults.interval),
            capacity=_env_value(env, "CAPACITY", _positive_int, defaults.capacity),
            clock_ticks=_env_value(env, "CLOCK_TICKS", _positive_int, defaults.clock_ticks),
        )


@dataclass(slots=True)
class AlertSettings:
    """Thresholds above which the monitor logs an alert."""

    cpu_threshold: float = 90.0
    temp_threshold: float = 85.0
    alerts_enabled: bool = True


def _positive_int(raw: str) -> int:
    value = int(raw)
    if value < 1:
        raise ValueError(f"expected a positive integer, got {value}")
    return value


def _env_value(
    env: Mapping[str, str],
    key: str,
    parse: Callable[[str], T],
    default: T,
) -> T:
    raw = env.get(f"{ENV_PREFIX}{key}")
    if raw is None or raw == "":
        return default
    try:
        return parse(raw)
    except ValueError:
        log.warning("Ignoring invalid %s%s=%r, using %r", ENV_PREFIX, key, raw, default)
        return default

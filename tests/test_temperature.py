"""Tests for the temperature monitor."""

from types import SimpleNamespace

from toolwatch.temperature import Temperature, TemperatureMonitor


def reading(label: str, current: float, high=None, critical=None):
    return SimpleNamespace(label=label, current=current, high=high, critical=critical)


def test_readings_flattened():
    """Test all chips' readings are returned with chip name as fallback label."""
    monitor = TemperatureMonitor(
        sensors=lambda: {
            "coretemp": [reading("Package id 0", 55.0, 80.0, 100.0)],
            "nvme": [reading("", 40.0)],
        }
    )

    assert monitor.get_temperatures() == [
        Temperature("Package id 0", 55.0, 80.0, 100.0),
        Temperature("nvme", 40.0),
    ]


def test_main_temperature_priority():
    """Test Tctl wins over other CPU-like labels."""
    monitor = TemperatureMonitor(
        sensors=lambda: {
            "coretemp": [reading("Core 0", 50.0), reading("Package id 0", 52.0)],
            "k10temp": [reading("Tctl", 61.5)],
        }
    )

    assert monitor.get_main_temperature() == 61.5


def test_main_temperature_falls_back_to_first():
    monitor = TemperatureMonitor(sensors=lambda: {"acpitz": [reading("zone", 33.0)]})

    assert monitor.get_main_temperature() == 33.0


def test_no_sensors():
    """Test 0.0 when nothing is available."""
    assert TemperatureMonitor(sensors=dict).get_main_temperature() == 0.0


def test_sensor_error_is_not_fatal():
    def broken():
        raise OSError("no hwmon")

    monitor = TemperatureMonitor(sensors=broken)

    assert monitor.get_temperatures() == []
    assert monitor.get_main_temperature() == 0.0


def test_default_sensor_source_works():
    """Test the real psutil-backed source returns a float on any platform."""
    assert isinstance(TemperatureMonitor().get_main_temperature(), float)

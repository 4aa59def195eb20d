"""
Shared test fixtures for console unit tests.
"""

from datetime import datetime

import pytest

from rover_console.console import (
    BATTERY_LINK, DRIVE_LINK, RADAR_LINK, ConsoleConfig, RoverConsole,
)
from rover_console.control.serial_link import LinkConfig, MockSerialLink
from rover_console.control.state_machine import ControlConfig, ControlStateMachine
from rover_console.display.presentation import Presentation


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class RecordingPresentation(Presentation):
    """Presentation sink that records every call in order."""

    def __init__(self):
        self.calls = []

    def _record(self, name, *args):
        self.calls.append((name,) + args)

    def set_angle_label(self, angle):
        self._record("set_angle_label", angle)

    def set_range_label(self, distance):
        self._record("set_range_label", distance)

    def set_needle(self, polygon):
        self._record("set_needle", polygon)

    def add_detection(self, point):
        self._record("add_detection", point)

    def remove_detection(self, point):
        self._record("remove_detection", point)

    def set_battery_labels(self, bus_voltage, shunt_voltage, load_voltage, current, power):
        self._record("set_battery_labels", bus_voltage, shunt_voltage, load_voltage, current, power)

    def set_power_percentage(self, percentage, text):
        self._record("set_power_percentage", percentage, text)

    def append_history_row(self, entry):
        self._record("append_history_row", entry)

    def set_sensor_labels(self, camera, gps, accelerometer, imu, speed):
        self._record("set_sensor_labels", camera, gps, accelerometer, imu, speed)

    def set_controls_enabled(self, enabled):
        self._record("set_controls_enabled", enabled)

    def set_mode_label(self, label):
        self._record("set_mode_label", label)

    def set_laser_status_text(self, text):
        self._record("set_laser_status_text", text)

    def set_servo_angle(self, angle):
        self._record("set_servo_angle", angle)

    def named(self, name):
        """Arguments of every call to one method."""
        return [call[1:] for call in self.calls if call[0] == name]

    def last(self, name):
        matches = self.named(name)
        return matches[-1] if matches else None


@pytest.fixture
def clock():
    """Fake monotonic clock."""
    return FakeClock()


@pytest.fixture
def presentation():
    """Recording presentation sink."""
    return RecordingPresentation()


@pytest.fixture
def radar_link():
    """Started mock radar link."""
    link = MockSerialLink(LinkConfig(name=RADAR_LINK, port="mock"))
    link.start()
    return link


@pytest.fixture
def control_config():
    """Default control configuration."""
    return ControlConfig()


@pytest.fixture
def state_machine(radar_link, presentation, control_config, clock):
    """State machine wired to a mock link and recording sink."""
    return ControlStateMachine(radar_link, presentation, control_config, clock)


@pytest.fixture
def mock_links():
    """Mock radar, battery and drive links (not started)."""
    return {
        RADAR_LINK: MockSerialLink(LinkConfig(name=RADAR_LINK, port="mock")),
        BATTERY_LINK: MockSerialLink(LinkConfig(name=BATTERY_LINK, port="mock")),
        DRIVE_LINK: MockSerialLink(LinkConfig(name=DRIVE_LINK, port="mock")),
    }


@pytest.fixture
def console(mock_links, presentation, clock):
    """Started console on mock links with a fixed wall clock."""
    rc = RoverConsole(
        ConsoleConfig(),
        presentation=presentation,
        links=mock_links,
        clock=clock,
        wall_clock=lambda: datetime(2024, 5, 1, 14, 30, 5),
    )
    rc.start()
    return rc

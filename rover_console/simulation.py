"""
Simulated Vehicle
=================

In-memory stand-ins for the radar MCU and the battery telemetry source,
used by --simulation to run the console without hardware.

The radar MCU answers every servo angle command with one radar line for
that angle. It treats LASER_ON as firing the laser for a fixed hold time
and then reports LASER_DEACTIVATED.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional
import logging

import numpy as np

from .control.serial_link import LinkConfig, MockSerialLink

logger = logging.getLogger(__name__)


@dataclass
class SimulationConfig:
    """Simulated vehicle parameters."""
    seed: Optional[int] = None

    # Radar: distances drawn around a wall, with occasional close targets
    wall_distance_cm: float = 180.0
    distance_noise_cm: float = 15.0
    close_target_probability: float = 0.01
    close_target_cm: float = 30.0

    laser_hold_s: float = 3.0

    # Battery: nominal 12V pack
    battery_period_s: float = 2.0
    bus_voltage: float = 12.0
    load_current_ma: float = 150.0
    shunt_resistance_ohm: float = 0.1


class SimulatedRadarLink(MockSerialLink):
    """Radar/servo/laser MCU."""

    def __init__(self, config: Optional[LinkConfig] = None,
                 sim: Optional[SimulationConfig] = None,
                 clock: Callable[[], float] = time.monotonic):
        super().__init__(config or LinkConfig(name="radar", port="sim://radar"))
        self.sim = sim or SimulationConfig()
        self._rng = np.random.default_rng(self.sim.seed)
        self._clock = clock
        self._laser_off_at: Optional[float] = None

    def send_command(self, command: str) -> bool:
        if not super().send_command(command):
            return False

        command = command.strip()
        if command.isdigit():
            self.inject(f"{int(command)},{self._distance():.1f}\n")
        elif command == "LASER_ON" and self._laser_off_at is None:
            self._laser_off_at = self._clock() + self.sim.laser_hold_s
            logger.debug("Simulated laser firing")
        return True

    def read_available(self) -> bytes:
        if self._laser_off_at is not None and self._clock() >= self._laser_off_at:
            self._laser_off_at = None
            self.inject("LASER_DEACTIVATED\n")
        return super().read_available()

    def _distance(self) -> float:
        if self._rng.random() < self.sim.close_target_probability:
            return self.sim.close_target_cm
        distance = self._rng.normal(self.sim.wall_distance_cm, self.sim.distance_noise_cm)
        return float(max(0.0, distance))


class SimulatedBatteryLink(MockSerialLink):
    """Battery telemetry source sending untagged six-field records."""

    def __init__(self, config: Optional[LinkConfig] = None,
                 sim: Optional[SimulationConfig] = None,
                 clock: Callable[[], float] = time.monotonic):
        super().__init__(config or LinkConfig(name="battery", port="sim://battery"))
        self.sim = sim or SimulationConfig()
        self._rng = np.random.default_rng(self.sim.seed)
        self._clock = clock
        self._next_sample_at = 0.0
        self._sequence = 0

    def read_available(self) -> bytes:
        now = self._clock()
        if self.is_open and now >= self._next_sample_at:
            self._next_sample_at = now + self.sim.battery_period_s
            self.inject(self._record())
        return super().read_available()

    def _record(self) -> str:
        self._sequence += 1
        current = float(self._rng.normal(self.sim.load_current_ma, 10.0))
        bus = float(self.sim.bus_voltage + self._rng.normal(0.0, 0.05))
        shunt_mv = current * self.sim.shunt_resistance_ohm
        load = bus + shunt_mv / 1000.0
        power = bus * current
        return f"{self._sequence},{bus:.2f},{shunt_mv:.2f},{load:.2f},{current:.2f},{power:.2f}\n"

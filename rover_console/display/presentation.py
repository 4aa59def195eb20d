"""
Presentation Sink
=================

Every display update the console produces goes through this interface.
The base class ignores all calls, so a headless console can run with it
directly; a GUI subclasses it and overrides what it draws.
"""

import logging
from typing import List, Tuple

from ..history.battery import HistoryEntry
from ..history.detections import DetectionPoint

logger = logging.getLogger(__name__)


class Presentation:
    """No-op display sink."""

    def set_angle_label(self, angle: float):
        pass

    def set_range_label(self, distance: float):
        pass

    def set_needle(self, polygon: List[Tuple[float, float]]):
        pass

    def add_detection(self, point: DetectionPoint):
        pass

    def remove_detection(self, point: DetectionPoint):
        pass

    def set_battery_labels(self, bus_voltage: float, shunt_voltage: float,
                           load_voltage: float, current: float, power: float):
        pass

    def set_power_percentage(self, percentage: int, text: str):
        pass

    def append_history_row(self, entry: HistoryEntry):
        pass

    def set_sensor_labels(self, camera: str, gps: str, accelerometer: str,
                          imu: str, speed: int):
        pass

    def set_controls_enabled(self, enabled: bool):
        pass

    def set_mode_label(self, label: str):
        pass

    def set_laser_status_text(self, text: str):
        pass

    def set_servo_angle(self, angle: int):
        pass


class LoggingPresentation(Presentation):
    """
    Headless sink that writes display updates to the log.

    Radar and sweep updates arrive at up to 20Hz, so they go to DEBUG;
    state changes and battery readings go to INFO.
    """

    def set_angle_label(self, angle: float):
        logger.debug(f"Angle: {angle:.1f}°")

    def set_range_label(self, distance: float):
        logger.debug(f"Range: {distance:.1f} cm")

    def set_battery_labels(self, bus_voltage, shunt_voltage, load_voltage,
                           current, power):
        logger.info(
            f"Battery: bus={bus_voltage:.2f}V shunt={shunt_voltage:.2f}mV "
            f"load={load_voltage:.2f}V current={current:.2f}mA power={power:.2f}mW"
        )

    def set_power_percentage(self, percentage: int, text: str):
        logger.info(f"Power: {text}")

    def append_history_row(self, entry: HistoryEntry):
        logger.debug(f"History: {' | '.join(entry.labels())}")

    def set_sensor_labels(self, camera, gps, accelerometer, imu, speed):
        logger.debug(
            f"Sensors: camera={camera} gps={gps} accel={accelerometer} imu={imu} speed={speed}"
        )

    def set_controls_enabled(self, enabled: bool):
        logger.info(f"Manual controls {'enabled' if enabled else 'disabled'}")

    def set_mode_label(self, label: str):
        logger.info(f"Mode button: {label}")

    def set_laser_status_text(self, text: str):
        logger.info(text)

    def set_servo_angle(self, angle: int):
        logger.debug(f"Servo: {angle}°")

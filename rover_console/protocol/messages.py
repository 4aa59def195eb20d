"""
Message Decoder
===============

Classifies one complete serial line into a typed message.

Inbound line formats:
    B,<tag>,<bus>,<shunt>,<load>,<current>,<power>   - battery telemetry
    <angle>,<distance>                               - radar sample
    LASER_ACTIVATED                                  - laser engaged by MCU
    LASER_DEACTIVATED                                - laser released by MCU

Drive base link (SensorDecoder):
    <camera>,<unused>,<gps>,<accelerometer>,<imu>,<speed>[,...]

Anything else decodes to Unknown and is dropped by the consumer.
Numeric fields that fail to parse, or parse to inf/nan, decode to 0 rather
than rejecting the record, so a noisy link keeps updating the display.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Union

logger = logging.getLogger(__name__)

BATTERY_PREFIX = "B,"
BATTERY_FIELD_COUNT = 6     # tag + 5 values, after the prefix
RADAR_FIELD_COUNT = 2
SENSOR_FIELD_COUNT = 6


@dataclass(frozen=True)
class RadarSample:
    """Polar radar reading."""
    angle: float        # degrees
    distance: float     # cm


@dataclass(frozen=True)
class BatterySample:
    """INA219 style power telemetry record."""
    bus_voltage: float = 0.0      # V
    shunt_voltage: float = 0.0    # mV
    load_voltage: float = 0.0     # V
    current: float = 0.0          # mA
    power: float = 0.0            # mW
    tag: str = ""


@dataclass(frozen=True)
class SensorSample:
    """Drive base sensor readout, shown as text labels."""
    camera: str = ""
    gps: str = ""
    accelerometer: str = ""
    imu: str = ""
    speed: int = 0


class LaserEvent(Enum):
    """Laser state reported by the MCU."""
    ACTIVATED = "LASER_ACTIVATED"
    DEACTIVATED = "LASER_DEACTIVATED"


@dataclass(frozen=True)
class Unknown:
    """Line that matched no known shape."""
    line: str = ""


Message = Union[RadarSample, BatterySample, SensorSample, LaserEvent, Unknown]


def _to_float(text: str) -> float:
    """Parse a numeric field, 0.0 on failure or a non-finite value."""
    if '_' in text:
        return 0.0
    try:
        value = float(text)
    except ValueError:
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return value


def _to_int(text: str) -> int:
    """Parse an integer field, 0 on failure."""
    if '_' in text:
        return 0
    try:
        return int(text)
    except ValueError:
        return 0


def _battery_from_fields(fields: list) -> BatterySample:
    return BatterySample(
        bus_voltage=_to_float(fields[1]),
        shunt_voltage=_to_float(fields[2]),
        load_voltage=_to_float(fields[3]),
        current=_to_float(fields[4]),
        power=_to_float(fields[5]),
        tag=fields[0].strip(),
    )


class MessageDecoder:
    """
    Line decoder with drop statistics.

    A decoder attached to the dedicated battery link also accepts untagged
    six-field battery records, which is what the battery-only source sends.
    """

    def __init__(self, battery_only: bool = False):
        self.battery_only = battery_only
        self._decoded = 0
        self._dropped = 0

    def decode(self, line: str) -> Message:
        """
        Decode one line.

        Args:
            line: Complete line without its newline

        Returns:
            RadarSample, BatterySample, LaserEvent or Unknown
        """
        message = self._classify(line.strip())
        if isinstance(message, Unknown):
            self._dropped += 1
            logger.debug(f"Dropped line: {line!r}")
        else:
            self._decoded += 1
        return message

    def _classify(self, line: str) -> Message:
        # Prefix check first: battery records also contain commas
        if line.startswith(BATTERY_PREFIX):
            fields = line[len(BATTERY_PREFIX):].split(',')
            if len(fields) != BATTERY_FIELD_COUNT:
                return Unknown(line)
            return _battery_from_fields(fields)

        if ',' in line:
            fields = line.split(',')
            if len(fields) == RADAR_FIELD_COUNT:
                return RadarSample(
                    angle=_to_float(fields[0]),
                    distance=_to_float(fields[1]),
                )
            if self.battery_only and len(fields) == BATTERY_FIELD_COUNT:
                return _battery_from_fields(fields)
            return Unknown(line)

        if line == LaserEvent.ACTIVATED.value:
            return LaserEvent.ACTIVATED
        if line == LaserEvent.DEACTIVATED.value:
            return LaserEvent.DEACTIVATED

        return Unknown(line)

    @property
    def stats(self) -> dict:
        """Get decoder statistics."""
        return {
            "decoded": self._decoded,
            "dropped": self._dropped,
        }


class SensorDecoder(MessageDecoder):
    """
    Decoder for the drive base link.

    The drive base only reports sensor readouts; radar, battery and laser
    lines are never produced from this link.
    """

    def _classify(self, line: str) -> Message:
        fields = line.split(',')
        if len(fields) < SENSOR_FIELD_COUNT:
            return Unknown(line)
        # Field 1 is not displayed
        return SensorSample(
            camera=fields[0].strip(),
            gps=fields[2].strip(),
            accelerometer=fields[3].strip(),
            imu=fields[4].strip(),
            speed=_to_int(fields[5]),
        )


_default_decoder = MessageDecoder()


def decode(line: str) -> Message:
    """Decode a line from the radar link."""
    return _default_decoder.decode(line)

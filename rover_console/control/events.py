"""
Console events that do not come from the serial protocol: timer ticks and
operator input. Serial-derived events are the protocol Message variants.
"""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class SweepTick:
    """Auto-sweep timer fired."""


@dataclass(frozen=True)
class InterlockTimeout:
    """Laser interlock timer fired."""


@dataclass(frozen=True)
class ToggleAuto:
    """Operator pressed Start/Stop Auto."""


@dataclass(frozen=True)
class SetAngle:
    """Operator moved the slider or pressed an angle button."""
    angle: int


class DriveDirection(Enum):
    """Drive commands for the vehicle base."""
    FORWARD = "FORWARD"
    BACKWARD = "BACKWARD"
    LEFT = "LEFT"
    RIGHT = "RIGHT"


@dataclass(frozen=True)
class Drive:
    """Operator pressed a drive button."""
    direction: DriveDirection


# Fixed angle buttons on the control panel
PRESET_ANGLES = (0, 45, 90, 135, 180)

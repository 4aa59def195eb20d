"""
Control System Modules
======================

This package contains the servo and laser control components of the console.

Components:
    - ControlStateMachine: Manual/auto sweep modes and laser interlock
    - SerialLink: Line link to the vehicle microcontrollers
    - IntervalTimer: Polled timers for the sweep and interlock
"""

from .serial_link import (
    SerialLink,
    LinkConfig,
    MockSerialLink,
)

from .state_machine import (
    ControlStateMachine,
    ControlState,
    ControlConfig,
    OperatingMode,
    Interlock,
    SweepDirection,
)

from .events import (
    SweepTick,
    InterlockTimeout,
    ToggleAuto,
    SetAngle,
    Drive,
    DriveDirection,
    PRESET_ANGLES,
)

from .timers import IntervalTimer

__all__ = [
    'SerialLink',
    'LinkConfig',
    'MockSerialLink',
    'ControlStateMachine',
    'ControlState',
    'ControlConfig',
    'OperatingMode',
    'Interlock',
    'SweepDirection',
    'SweepTick',
    'InterlockTimeout',
    'ToggleAuto',
    'SetAngle',
    'Drive',
    'DriveDirection',
    'PRESET_ANGLES',
    'IntervalTimer',
]

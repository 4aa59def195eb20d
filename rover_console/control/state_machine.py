"""
Control State Machine
=====================

Owns the operating mode (manual / auto sweep), the laser interlock and the
auto-sweep angle generator.

Laser interlock:
    Engaged by a LASER_ACTIVATED line from the MCU, or by any radar sample
    closer than the trigger distance while the interlock is idle.
    While engaged the sweep is paused, manual controls are locked and the
    mode toggle is ignored. Only LASER_DEACTIVATED releases it; the
    interlock timer re-asserts LASER_ON every interval until then.

All transitions run synchronously on the console thread. Outbound commands
are best effort: a failed write is logged and the transition still
completes.
"""

import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, List, Optional
import logging

from .events import InterlockTimeout, SetAngle, SweepTick, ToggleAuto
from .serial_link import SerialLink
from .timers import IntervalTimer
from ..display.presentation import Presentation
from ..protocol.messages import LaserEvent, RadarSample

logger = logging.getLogger(__name__)

LASER_STATUS_ON = "Laser: On"
LASER_STATUS_OFF = "Laser: Off"

# Auto toggle button caption for each mode
MODE_LABEL_MANUAL = "Start Auto"
MODE_LABEL_AUTO = "Stop Auto"


class OperatingMode(Enum):
    """Servo control modes."""
    MANUAL = auto()         # Slider and preset buttons drive the servo
    AUTO_SWEEP = auto()     # Timer sweeps 0-180-0


class Interlock(Enum):
    """Laser interlock sub-state."""
    IDLE = auto()
    LASER_ACTIVE = auto()


class SweepDirection(Enum):
    INCREASING = 1
    DECREASING = -1


@dataclass
class ControlConfig:
    """Timing and threshold configuration."""
    sweep_interval_s: float = 0.05
    sweep_step_deg: int = 2
    sweep_min_deg: int = 0
    sweep_max_deg: int = 180
    interlock_interval_s: float = 2.0
    laser_trigger_distance_cm: float = 50.0


@dataclass
class ControlState:
    """Current control state."""
    mode: OperatingMode = OperatingMode.MANUAL
    interlock: Interlock = Interlock.IDLE
    controls_enabled: bool = True

    # Saved on laser engage, restored on release
    saved_mode: Optional[OperatingMode] = None
    saved_controls_enabled: Optional[bool] = None

    sweep_angle: int = 0
    sweep_direction: SweepDirection = SweepDirection.INCREASING

    @property
    def laser_active(self) -> bool:
        return self.interlock == Interlock.LASER_ACTIVE

    @property
    def mode_label(self) -> str:
        return MODE_LABEL_AUTO if self.mode == OperatingMode.AUTO_SWEEP else MODE_LABEL_MANUAL


class ControlStateMachine:
    """
    Mode and interlock controller.

    Invariant: while the laser is active, the sweep timer is stopped, the
    mode is MANUAL and the manual controls are disabled.
    """

    def __init__(self, link: Optional[SerialLink],
                 presentation: Optional[Presentation] = None,
                 config: Optional[ControlConfig] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.link = link
        self.presentation = presentation or Presentation()
        self.config = config or ControlConfig()
        self._state = ControlState(sweep_angle=self.config.sweep_min_deg)

        self.sweep_timer = IntervalTimer(self.config.sweep_interval_s, clock)
        self.interlock_timer = IntervalTimer(self.config.interlock_interval_s, clock)

        self._callbacks: List[Callable[[ControlState], None]] = []

        # Statistics
        self._laser_engagements = 0
        self._dropped_commands = 0
        self._link_down = False

    def start(self):
        """Push the initial state to the display."""
        self.presentation.set_controls_enabled(self._state.controls_enabled)
        self.presentation.set_mode_label(self._state.mode_label)
        self.presentation.set_laser_status_text(
            LASER_STATUS_ON if self._state.laser_active else LASER_STATUS_OFF
        )

    def stop(self):
        """Stop both timers."""
        self.sweep_timer.stop()
        self.interlock_timer.stop()

    def handle(self, event):
        """
        Apply one event.

        Accepts LaserEvent, RadarSample and the timer/operator events;
        anything else is logged and ignored.
        """
        if isinstance(event, LaserEvent):
            if event == LaserEvent.ACTIVATED:
                self.engage_laser("MCU reported laser on")
            else:
                self.release_laser()
        elif isinstance(event, RadarSample):
            self.on_radar_sample(event)
        elif isinstance(event, SweepTick):
            self.sweep_tick()
        elif isinstance(event, InterlockTimeout):
            self.interlock_timeout()
        elif isinstance(event, ToggleAuto):
            self.toggle_auto()
        elif isinstance(event, SetAngle):
            self.set_angle(event.angle)
        else:
            logger.debug(f"Control ignores {event!r}")

    def on_radar_sample(self, sample: RadarSample):
        """Engage the interlock if something is inside the trigger distance."""
        if (sample.distance < self.config.laser_trigger_distance_cm
                and not self._state.laser_active):
            self.engage_laser(f"target at {sample.distance:.1f} cm")

    def engage_laser(self, reason: str = ""):
        """
        Engage the laser interlock.

        Repeated engagement while active re-arms the interlock timer and
        re-sends LASER_ON but keeps the originally saved state.
        """
        state = self._state
        if state.laser_active:
            self.interlock_timer.start()
            self._send("LASER_ON")
            return

        state.saved_mode = state.mode
        state.saved_controls_enabled = state.controls_enabled

        if state.mode == OperatingMode.AUTO_SWEEP:
            self.sweep_timer.stop()
            state.mode = OperatingMode.MANUAL

        self._set_controls_enabled(False)
        self.presentation.set_mode_label(state.mode_label)
        self.presentation.set_laser_status_text(LASER_STATUS_ON)
        self._send("LASER_ON")

        state.interlock = Interlock.LASER_ACTIVE
        self.interlock_timer.start()
        self._laser_engagements += 1

        logger.warning(
            f"Laser interlock engaged ({reason or 'unspecified'}), "
            f"saved mode {state.saved_mode.name}"
        )
        self._notify()

    def release_laser(self):
        """Release the interlock and restore the pre-laser mode and controls."""
        state = self._state
        if not state.laser_active:
            logger.debug("Laser release while interlock idle, ignored")
            return

        self.interlock_timer.stop()
        state.interlock = Interlock.IDLE
        self.presentation.set_laser_status_text(LASER_STATUS_OFF)
        self._send("LASER_OFF")

        if state.saved_mode == OperatingMode.AUTO_SWEEP:
            state.mode = OperatingMode.AUTO_SWEEP
            self.sweep_timer.start(self.config.sweep_interval_s)
            self._send("AUTO")
        else:
            state.mode = OperatingMode.MANUAL
            self._send("MANUAL")

        self._set_controls_enabled(
            True if state.saved_controls_enabled is None else state.saved_controls_enabled
        )
        self.presentation.set_mode_label(state.mode_label)

        state.saved_mode = None
        state.saved_controls_enabled = None

        logger.info(f"Laser interlock released, resuming {state.mode.name}")
        self._notify()

    def interlock_timeout(self):
        """Interlock timer fired: re-assert the laser, or stop a stale timer."""
        if not self._state.laser_active:
            self.interlock_timer.stop()
            return
        self.presentation.set_laser_status_text(LASER_STATUS_ON)
        self._send("LASER_ON")

    def toggle_auto(self):
        """Flip between manual and auto sweep. Ignored while the laser is active."""
        state = self._state
        if state.laser_active:
            logger.info("Mode toggle ignored: laser interlock active")
            return

        if state.mode == OperatingMode.MANUAL:
            state.mode = OperatingMode.AUTO_SWEEP
            self.sweep_timer.start(self.config.sweep_interval_s)
            self.presentation.set_mode_label(state.mode_label)
            self._set_controls_enabled(False)
            self._send("AUTO")
        else:
            state.mode = OperatingMode.MANUAL
            self.sweep_timer.stop()
            self.presentation.set_mode_label(state.mode_label)
            self._set_controls_enabled(True)
            self._send("MANUAL")

        logger.info(f"Mode change: {state.mode.name}")
        self._notify()

    def set_angle(self, angle: float) -> bool:
        """
        Command a servo angle from the slider or a preset button.

        Args:
            angle: Requested angle in degrees, clamped to the sweep range

        Returns:
            True if the command was accepted (manual mode, laser idle)
        """
        state = self._state
        if state.mode != OperatingMode.MANUAL or state.laser_active:
            logger.debug(f"Angle {angle} ignored in {state.mode.name}/{state.interlock.name}")
            return False

        target = int(round(angle))
        target = max(self.config.sweep_min_deg, min(self.config.sweep_max_deg, target))
        self._send(str(target))
        self.presentation.set_servo_angle(target)
        return True

    def sweep_tick(self):
        """Advance the sweep one step, bouncing at the ends of the range."""
        state = self._state
        if state.mode != OperatingMode.AUTO_SWEEP:
            return

        cfg = self.config
        angle = state.sweep_angle + cfg.sweep_step_deg * state.sweep_direction.value
        if angle >= cfg.sweep_max_deg:
            angle = cfg.sweep_max_deg
            state.sweep_direction = SweepDirection.DECREASING
        elif angle <= cfg.sweep_min_deg:
            angle = cfg.sweep_min_deg
            state.sweep_direction = SweepDirection.INCREASING
        state.sweep_angle = angle

        self._send(str(angle))
        self.presentation.set_servo_angle(angle)

    def _set_controls_enabled(self, enabled: bool):
        self._state.controls_enabled = enabled
        self.presentation.set_controls_enabled(enabled)

    def _send(self, command: str):
        if self.link is not None and self.link.send_command(command):
            self._link_down = False
            return
        self._dropped_commands += 1
        # Warn once per outage
        if self._link_down:
            logger.debug(f"Command {command!r} dropped")
        else:
            logger.warning(f"Command {command!r} dropped: link not writable")
            self._link_down = True

    def _notify(self):
        for callback in self._callbacks:
            try:
                callback(self._state)
            except Exception as e:
                logger.warning(f"State callback error: {e}")

    def add_callback(self, callback: Callable[[ControlState], None]):
        """Register callback for mode and interlock changes."""
        self._callbacks.append(callback)

    def get_state(self) -> ControlState:
        """Get current control state."""
        return self._state

    @property
    def stats(self) -> dict:
        return {
            "laser_engagements": self._laser_engagements,
            "dropped_commands": self._dropped_commands,
        }

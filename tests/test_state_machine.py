"""
Unit tests for the control state machine.

Tests laser interlock engage/release, auto sweep toggling and stepping,
manual angle gating, timer handling and best-effort command writes.
"""

import pytest
from unittest.mock import Mock

from rover_console.control.events import (
    PRESET_ANGLES, InterlockTimeout, SetAngle, SweepTick, ToggleAuto,
)
from rover_console.control.state_machine import (
    MODE_LABEL_AUTO, MODE_LABEL_MANUAL, ControlConfig, ControlState,
    ControlStateMachine, Interlock, OperatingMode, SweepDirection,
)
from rover_console.protocol.messages import LaserEvent, RadarSample, Unknown


class TestControlState:
    """Tests for ControlState defaults."""

    def test_default_state(self):
        """Start in manual, laser idle, controls enabled, sweep at 0."""
        state = ControlState()

        assert state.mode == OperatingMode.MANUAL
        assert state.interlock == Interlock.IDLE
        assert state.controls_enabled is True
        assert state.sweep_angle == 0
        assert state.sweep_direction == SweepDirection.INCREASING
        assert state.laser_active is False
        assert state.mode_label == MODE_LABEL_MANUAL


class TestControlConfig:
    """Tests for ControlConfig defaults."""

    def test_defaults(self):
        config = ControlConfig()

        assert config.sweep_interval_s == 0.05
        assert config.sweep_step_deg == 2
        assert config.interlock_interval_s == 2.0
        assert config.laser_trigger_distance_cm == 50.0


class TestStart:
    """Tests for the initial display sync."""

    def test_start_publishes_state(self, state_machine, presentation):
        state_machine.start()

        assert presentation.last("set_controls_enabled") == (True,)
        assert presentation.last("set_mode_label") == (MODE_LABEL_MANUAL,)
        assert presentation.last("set_laser_status_text") == ("Laser: Off",)


class TestToggleAuto:
    """Tests for switching between manual and auto sweep."""

    def test_enter_auto(self, state_machine, radar_link, presentation):
        """Entering auto starts the sweep timer and locks the controls."""
        state_machine.toggle_auto()

        state = state_machine.get_state()
        assert state.mode == OperatingMode.AUTO_SWEEP
        assert state_machine.sweep_timer.is_active
        assert state.controls_enabled is False
        assert presentation.last("set_controls_enabled") == (False,)
        assert presentation.last("set_mode_label") == (MODE_LABEL_AUTO,)
        assert radar_link.sent == ["AUTO"]

    def test_back_to_manual(self, state_machine, radar_link, presentation):
        """Leaving auto stops the timer and unlocks the controls."""
        state_machine.toggle_auto()
        state_machine.toggle_auto()

        state = state_machine.get_state()
        assert state.mode == OperatingMode.MANUAL
        assert not state_machine.sweep_timer.is_active
        assert state.controls_enabled is True
        assert presentation.last("set_mode_label") == (MODE_LABEL_MANUAL,)
        assert radar_link.sent == ["AUTO", "MANUAL"]

    def test_sweep_timer_interval(self, state_machine):
        state_machine.toggle_auto()

        assert state_machine.sweep_timer.interval_s == 0.05

    def test_ignored_while_laser_active(self, state_machine, radar_link, presentation):
        """Toggle during the interlock changes nothing at all."""
        state_machine.engage_laser()
        sent_before = list(radar_link.sent)
        calls_before = list(presentation.calls)
        state_before = ControlState(**vars(state_machine.get_state()))

        state_machine.toggle_auto()

        assert vars(state_machine.get_state()) == vars(state_before)
        assert not state_machine.sweep_timer.is_active
        assert state_machine.interlock_timer.is_active
        assert radar_link.sent == sent_before
        assert presentation.calls == calls_before


class TestSweepTick:
    """Tests for the auto sweep angle generator."""

    def test_steps_by_two(self, state_machine, radar_link, presentation):
        state_machine.toggle_auto()

        state_machine.sweep_tick()
        state_machine.sweep_tick()

        assert state_machine.get_state().sweep_angle == 4
        assert radar_link.sent[-2:] == ["2", "4"]
        assert presentation.last("set_servo_angle") == (4,)

    def test_clamps_and_flips_at_180(self, state_machine):
        """At 180 increasing, clamp and reverse on the same tick."""
        state_machine.toggle_auto()
        state = state_machine.get_state()
        state.sweep_angle = 180
        state.sweep_direction = SweepDirection.INCREASING

        state_machine.sweep_tick()

        assert state.sweep_angle == 180
        assert state.sweep_direction == SweepDirection.DECREASING

        state_machine.sweep_tick()
        assert state.sweep_angle == 178

    def test_reaching_180_flips(self, state_machine, radar_link):
        """178 + 2 lands on 180 and reverses."""
        state_machine.toggle_auto()
        state = state_machine.get_state()
        state.sweep_angle = 178

        state_machine.sweep_tick()

        assert state.sweep_angle == 180
        assert state.sweep_direction == SweepDirection.DECREASING
        assert radar_link.sent[-1] == "180"

    def test_clamps_and_flips_at_0(self, state_machine):
        state_machine.toggle_auto()
        state = state_machine.get_state()
        state.sweep_angle = 2
        state.sweep_direction = SweepDirection.DECREASING

        state_machine.sweep_tick()

        assert state.sweep_angle == 0
        assert state.sweep_direction == SweepDirection.INCREASING

    def test_odd_step_never_overshoots(self, radar_link, presentation, clock):
        """A step that does not divide 180 still clamps at the ends."""
        sm = ControlStateMachine(radar_link, presentation, ControlConfig(sweep_step_deg=7), clock)
        sm.toggle_auto()

        angles = []
        for _ in range(60):
            sm.sweep_tick()
            angles.append(sm.get_state().sweep_angle)

        assert max(angles) == 180
        assert min(angles) == 0
        assert all(0 <= a <= 180 for a in angles)

    def test_ignored_in_manual(self, state_machine, radar_link):
        """A stale tick after leaving auto does nothing."""
        state_machine.sweep_tick()

        assert state_machine.get_state().sweep_angle == 0
        assert radar_link.sent == []

    def test_full_cycle(self, state_machine):
        """90 ticks reach 180; 90 more return to 0."""
        state_machine.toggle_auto()
        for _ in range(90):
            state_machine.sweep_tick()
        assert state_machine.get_state().sweep_angle == 180

        for _ in range(90):
            state_machine.sweep_tick()
        assert state_machine.get_state().sweep_angle == 0
        assert state_machine.get_state().sweep_direction == SweepDirection.INCREASING


class TestSetAngle:
    """Tests for manual angle commands."""

    @pytest.mark.parametrize("angle", PRESET_ANGLES)
    def test_preset_angles(self, state_machine, radar_link, presentation, angle):
        assert state_machine.set_angle(angle) is True
        assert radar_link.sent == [str(angle)]
        assert radar_link.written == f"{angle}\n".encode()
        assert presentation.last("set_servo_angle") == (angle,)

    def test_clamped(self, state_machine, radar_link):
        """Out-of-range slider values are clamped."""
        state_machine.set_angle(250)
        state_machine.set_angle(-10)

        assert radar_link.sent == ["180", "0"]

    def test_rejected_in_auto(self, state_machine, radar_link):
        state_machine.toggle_auto()

        assert state_machine.set_angle(90) is False
        assert radar_link.sent == ["AUTO"]

    def test_rejected_while_laser_active(self, state_machine, radar_link):
        state_machine.engage_laser()

        assert state_machine.set_angle(90) is False
        assert "90" not in radar_link.sent


class TestLaserEngage:
    """Tests for interlock engagement."""

    def test_close_radar_sample_engages(self, state_machine, radar_link, presentation):
        """Distance under 50 cm engages the laser and sends LASER_ON once."""
        state_machine.on_radar_sample(RadarSample(angle=30.0, distance=10.0))

        state = state_machine.get_state()
        assert state.interlock == Interlock.LASER_ACTIVE
        assert state.controls_enabled is False
        assert presentation.last("set_controls_enabled") == (False,)
        assert presentation.last("set_laser_status_text") == ("Laser: On",)
        assert radar_link.sent == ["LASER_ON"]
        assert state_machine.interlock_timer.is_active
        assert state_machine.interlock_timer.interval_s == 2.0

    def test_distance_at_threshold_does_not_engage(self, state_machine, radar_link):
        state_machine.on_radar_sample(RadarSample(angle=30.0, distance=50.0))

        assert state_machine.get_state().interlock == Interlock.IDLE
        assert radar_link.sent == []

    def test_engage_stops_sweep(self, state_machine, radar_link):
        """Engaging from auto stops the sweep and saves AUTO_SWEEP."""
        state_machine.toggle_auto()

        state_machine.on_radar_sample(RadarSample(angle=90.0, distance=10.0))

        state = state_machine.get_state()
        assert state.mode == OperatingMode.MANUAL
        assert state.saved_mode == OperatingMode.AUTO_SWEEP
        assert state.saved_controls_enabled is False
        assert not state_machine.sweep_timer.is_active
        assert radar_link.sent == ["AUTO", "LASER_ON"]

    def test_close_samples_while_active_do_not_resend(self, state_machine, radar_link):
        """Further close samples are ignored while the interlock is active."""
        state_machine.on_radar_sample(RadarSample(angle=30.0, distance=10.0))
        state_machine.on_radar_sample(RadarSample(angle=32.0, distance=5.0))

        assert radar_link.sent == ["LASER_ON"]

    def test_laser_activated_message_engages(self, state_machine, radar_link):
        state_machine.handle(LaserEvent.ACTIVATED)

        assert state_machine.get_state().laser_active
        assert radar_link.sent == ["LASER_ON"]

    def test_repeat_activation_keeps_saved_state(self, state_machine, clock):
        """A second LASER_ACTIVATED re-arms but keeps the pre-laser mode."""
        state_machine.toggle_auto()
        state_machine.handle(LaserEvent.ACTIVATED)
        clock.advance(1.5)

        state_machine.handle(LaserEvent.ACTIVATED)

        state = state_machine.get_state()
        assert state.saved_mode == OperatingMode.AUTO_SWEEP
        assert state_machine.interlock_timer.remaining_s == pytest.approx(2.0)
        assert state_machine.stats["laser_engagements"] == 1


class TestLaserRelease:
    """Tests for interlock release."""

    def test_release_resumes_auto(self, state_machine, radar_link, presentation):
        """From auto, release sends LASER_OFF then AUTO and restarts the sweep."""
        state_machine.toggle_auto()
        state_machine.handle(LaserEvent.ACTIVATED)
        radar_link.sent.clear()

        state_machine.handle(LaserEvent.DEACTIVATED)

        state = state_machine.get_state()
        assert state.mode == OperatingMode.AUTO_SWEEP
        assert state.interlock == Interlock.IDLE
        assert state_machine.sweep_timer.is_active
        assert not state_machine.interlock_timer.is_active
        assert radar_link.sent == ["LASER_OFF", "AUTO"]
        assert radar_link.written == b"LASER_OFF\nAUTO\n"
        # Controls were locked by auto mode before the laser
        assert state.controls_enabled is False
        assert presentation.last("set_mode_label") == (MODE_LABEL_AUTO,)
        assert presentation.last("set_laser_status_text") == ("Laser: Off",)

    def test_release_returns_to_manual(self, state_machine, radar_link, presentation):
        """From manual, release sends LASER_OFF then MANUAL and unlocks controls."""
        state_machine.on_radar_sample(RadarSample(angle=30.0, distance=10.0))
        radar_link.sent.clear()

        state_machine.release_laser()

        state = state_machine.get_state()
        assert state.mode == OperatingMode.MANUAL
        assert state.controls_enabled is True
        assert presentation.last("set_controls_enabled") == (True,)
        assert radar_link.sent == ["LASER_OFF", "MANUAL"]
        assert state.saved_mode is None

    def test_release_while_idle_ignored(self, state_machine, radar_link):
        state_machine.handle(LaserEvent.DEACTIVATED)

        assert radar_link.sent == []
        assert state_machine.get_state().interlock == Interlock.IDLE

    def test_manual_angle_allowed_after_release(self, state_machine, radar_link):
        state_machine.engage_laser()
        state_machine.release_laser()

        assert state_machine.set_angle(45) is True


class TestInterlockTimeout:
    """Tests for the interlock timer."""

    def test_timeout_reasserts_laser(self, state_machine, radar_link):
        """The timer re-sends LASER_ON and does not release the interlock."""
        state_machine.engage_laser()

        state_machine.handle(InterlockTimeout())

        assert state_machine.get_state().laser_active
        assert radar_link.sent == ["LASER_ON", "LASER_ON"]

    def test_timeout_while_idle_stops_timer(self, state_machine, radar_link):
        state_machine.interlock_timer.start()

        state_machine.interlock_timeout()

        assert not state_machine.interlock_timer.is_active
        assert radar_link.sent == []

    def test_reassert_preserves_saved_mode(self, state_machine):
        state_machine.toggle_auto()
        state_machine.engage_laser()

        state_machine.interlock_timeout()
        state_machine.release_laser()

        assert state_machine.get_state().mode == OperatingMode.AUTO_SWEEP


class TestHandleDispatch:
    """Tests for handle()."""

    def test_routes_events(self, state_machine, radar_link):
        state_machine.handle(ToggleAuto())
        state_machine.handle(SweepTick())
        state_machine.handle(ToggleAuto())
        state_machine.handle(SetAngle(90))

        assert radar_link.sent == ["AUTO", "2", "MANUAL", "90"]

    def test_unknown_event_ignored(self, state_machine, radar_link):
        state_machine.handle(Unknown("junk"))

        assert radar_link.sent == []


class TestWriteFailure:
    """Tests for best-effort command writes."""

    def test_transition_completes_when_write_fails(self, state_machine, radar_link):
        """A failed LASER_ON still leaves the interlock engaged."""
        radar_link.fail_writes = True

        state_machine.on_radar_sample(RadarSample(angle=30.0, distance=10.0))

        assert state_machine.get_state().laser_active
        assert radar_link.sent == []
        assert state_machine.stats["dropped_commands"] == 1

    def test_no_link(self, presentation, clock):
        """A state machine without a link still runs every transition."""
        sm = ControlStateMachine(None, presentation, clock=clock)

        sm.toggle_auto()
        sm.sweep_tick()
        sm.engage_laser()
        sm.release_laser()

        assert sm.get_state().mode == OperatingMode.AUTO_SWEEP
        assert sm.stats["dropped_commands"] == 5


class TestCallbacks:
    """Tests for state change callbacks."""

    def test_callback_on_changes(self, state_machine):
        callback = Mock()
        state_machine.add_callback(callback)

        state_machine.toggle_auto()
        state_machine.engage_laser()
        state_machine.release_laser()

        assert callback.call_count == 3
        callback.assert_called_with(state_machine.get_state())

    def test_callback_error_does_not_propagate(self, state_machine):
        state_machine.add_callback(Mock(side_effect=RuntimeError("boom")))

        state_machine.toggle_auto()

        assert state_machine.get_state().mode == OperatingMode.AUTO_SWEEP

"""
Rover Console
=============

Context object that ties the serial links, protocol decoding, histories,
display sink and control state machine together.

Data flow:
    SerialLink -> LineFramer -> MessageDecoder -> dispatch()
        RadarSample   -> needle, labels, DetectionHistory, laser trigger
        BatterySample -> battery labels, power gauge, BatteryHistory
        SensorSample  -> drive base sensor labels (drive link only)
        LaserEvent    -> ControlStateMachine
    Timers and operator input -> dispatch() -> ControlStateMachine

Everything runs on the thread that calls poll(). Operator input from other
threads goes through submit(), which only enqueues.
"""

import queue
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Optional
import logging

from .control.events import (
    Drive, DriveDirection, InterlockTimeout, SetAngle, SweepTick, ToggleAuto,
)
from .control.serial_link import LinkConfig, SerialLink
from .control.state_machine import ControlConfig, ControlStateMachine
from .display.geometry import ScopeGeometry
from .display.presentation import Presentation
from .history.battery import (
    BatteryHistory, HistoryEntry, format_power_text, power_percentage,
)
from .history.detections import DetectionHistory, DetectionPoint
from .protocol.framing import LineFramer
from .protocol.messages import (
    BatterySample, LaserEvent, MessageDecoder, RadarSample, SensorDecoder,
    SensorSample, Unknown,
)

logger = logging.getLogger(__name__)

RADAR_LINK = "radar"
BATTERY_LINK = "battery"
DRIVE_LINK = "drive"


@dataclass
class ConsoleConfig:
    """Console configuration."""
    # Radar/servo/laser MCU
    radar: LinkConfig = field(
        default_factory=lambda: LinkConfig(name=RADAR_LINK, port="/dev/ttyACM0", baudrate=115200)
    )
    # Battery telemetry source, read only
    battery: Optional[LinkConfig] = field(
        default_factory=lambda: LinkConfig(name=BATTERY_LINK, port="/dev/ttyUSB0", baudrate=115200)
    )
    # Drive base, optional
    drive: Optional[LinkConfig] = None

    control: ControlConfig = field(default_factory=ControlConfig)

    detection_capacity: int = 50
    battery_history_size: int = 7
    max_expected_power_mw: float = 5000.0

    loop_sleep_s: float = 0.001


class RoverConsole:
    """
    Console controller.

    Constructed once at startup; start() opens the links, stop() closes
    them. A link that fails to open is kept: it delivers nothing and every
    write to it fails, but the rest of the console keeps working.
    """

    def __init__(self, config: Optional[ConsoleConfig] = None,
                 presentation: Optional[Presentation] = None,
                 links: Optional[Dict[str, SerialLink]] = None,
                 clock: Callable[[], float] = time.monotonic,
                 wall_clock: Callable[[], datetime] = datetime.now):
        self.config = config or ConsoleConfig()
        self.presentation = presentation or Presentation()
        self._wall_clock = wall_clock

        self.links: Dict[str, SerialLink] = links if links is not None else self._build_links()
        self._framers = {name: LineFramer() for name in self.links}
        self._decoders = {name: self._build_decoder(name) for name in self.links}

        self.detections = DetectionHistory(self.config.detection_capacity)
        self.battery_history = BatteryHistory(self.config.battery_history_size)
        self.geometry = ScopeGeometry()

        self.control = ControlStateMachine(
            self.links.get(RADAR_LINK),
            self.presentation,
            self.config.control,
            clock,
        )

        self._user_events: "queue.Queue" = queue.Queue()
        self._running = False

        # Statistics
        self._radar_samples = 0
        self._battery_samples = 0
        self._sensor_samples = 0

    def _build_links(self) -> Dict[str, SerialLink]:
        links = {}
        for cfg in (self.config.radar, self.config.battery, self.config.drive):
            if cfg is not None:
                links[cfg.name] = SerialLink(cfg)
        return links

    @staticmethod
    def _build_decoder(link_name: str) -> MessageDecoder:
        if link_name == DRIVE_LINK:
            return SensorDecoder()
        return MessageDecoder(battery_only=(link_name == BATTERY_LINK))

    def start(self) -> bool:
        """
        Open all links and publish the initial state.

        Returns:
            True if the radar link opened
        """
        logger.info("Starting console...")
        for name, link in self.links.items():
            if not link.start():
                logger.warning(f"{name} link unavailable, continuing without it")

        self.control.start()
        self._running = True

        radar = self.links.get(RADAR_LINK)
        return radar is not None and radar.is_open

    def stop(self):
        """Stop timers and close every link."""
        logger.info("Stopping console...")
        self._running = False
        self.control.stop()
        for link in self.links.values():
            link.stop()
        logger.info("Console stopped")

    def feed(self, link_name: str, data: bytes):
        """Frame, decode and dispatch bytes received on a link."""
        framer = self._framers[link_name]
        decoder = self._decoders[link_name]
        for line in framer.feed(data):
            self.dispatch(decoder.decode(line))

    def submit(self, event):
        """Queue an operator event; safe to call from any thread."""
        self._user_events.put(event)

    def dispatch(self, event):
        """Route one event to its handler."""
        if isinstance(event, RadarSample):
            self._on_radar_sample(event)
        elif isinstance(event, BatterySample):
            self._on_battery_sample(event)
        elif isinstance(event, SensorSample):
            self._on_sensor_sample(event)
        elif isinstance(event, LaserEvent):
            self.control.handle(event)
        elif isinstance(event, Drive):
            self._drive(event.direction)
        elif isinstance(event, (SweepTick, InterlockTimeout, ToggleAuto, SetAngle)):
            self.control.handle(event)
        elif isinstance(event, Unknown):
            pass
        else:
            logger.debug(f"Unhandled event {event!r}")

    def poll(self):
        """
        One pass of the event loop: serial input, then timers, then
        queued operator input.
        """
        for name, link in self.links.items():
            data = link.read_available()
            if data:
                self.feed(name, data)

        if self.control.sweep_timer.expired():
            self.dispatch(SweepTick())
        if self.control.interlock_timer.expired():
            self.dispatch(InterlockTimeout())

        while True:
            try:
                event = self._user_events.get_nowait()
            except queue.Empty:
                break
            self.dispatch(event)

    def request_stop(self):
        """Ask run() to return; safe to call from any thread."""
        self._running = False

    def run(self):
        """Poll until stop() or request_stop() is called."""
        while self._running:
            self.poll()
            time.sleep(self.config.loop_sleep_s)

    def _on_radar_sample(self, sample: RadarSample):
        self._radar_samples += 1
        self.presentation.set_angle_label(sample.angle)
        self.presentation.set_range_label(sample.distance)

        point = DetectionPoint.from_polar(sample.angle, sample.distance)
        self.presentation.add_detection(point)
        evicted = self.detections.push(point)
        if evicted is not None:
            self.presentation.remove_detection(evicted)

        self.presentation.set_needle(self.geometry.needle(sample.angle))

        self.control.on_radar_sample(sample)

    def _on_battery_sample(self, sample: BatterySample):
        self._battery_samples += 1
        max_power = self.config.max_expected_power_mw
        self.presentation.set_battery_labels(
            sample.bus_voltage, sample.shunt_voltage, sample.load_voltage,
            sample.current, sample.power,
        )
        self.presentation.set_power_percentage(
            power_percentage(sample.power, max_power),
            format_power_text(sample.power, max_power),
        )

        entry = HistoryEntry.from_sample(sample, self._wall_clock())
        self.battery_history.push(entry)
        self.presentation.append_history_row(entry)

    def _on_sensor_sample(self, sample: SensorSample):
        self._sensor_samples += 1
        self.presentation.set_sensor_labels(
            sample.camera, sample.gps, sample.accelerometer, sample.imu, sample.speed,
        )

    def _drive(self, direction: DriveDirection):
        link = self.links.get(DRIVE_LINK)
        if link is None or not link.send_command(direction.value):
            logger.warning(f"Drive {direction.name} dropped: no writable drive link")

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def status(self) -> dict:
        """Get current console status."""
        state = self.control.get_state()
        return {
            "running": self._running,
            "mode": state.mode.name,
            "interlock": state.interlock.name,
            "sweep_angle": state.sweep_angle,
            "detections": len(self.detections),
            "radar_samples": self._radar_samples,
            "battery_samples": self._battery_samples,
            "sensor_samples": self._sensor_samples,
            "links": {name: link.stats for name, link in self.links.items()},
            "decoders": {name: d.stats for name, d in self._decoders.items()},
            "control": self.control.stats,
        }

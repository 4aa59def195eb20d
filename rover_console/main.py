"""
Main Console Application
========================

Headless entry point: opens the serial links, logs display updates and
takes operator commands on stdin.

Operator commands:
    auto                         - toggle auto sweep
    angle <n> | <n>              - servo angle (manual mode)
    forward|backward|left|right  - drive base
    status                       - log console status
    quit                         - exit
"""

import signal
import sys
import threading
import argparse
import logging

from .console import (
    BATTERY_LINK, DRIVE_LINK, RADAR_LINK, ConsoleConfig, RoverConsole,
)
from .control.events import Drive, DriveDirection, SetAngle, ToggleAuto
from .control.serial_link import LinkConfig, MockSerialLink
from .display.presentation import LoggingPresentation
from .simulation import SimulatedBatteryLink, SimulatedRadarLink, SimulationConfig

logger = logging.getLogger(__name__)

QUIT_COMMANDS = ("quit", "exit", "q")


def parse_command(text: str):
    """
    Parse one operator command line.

    Returns:
        Event for the console, "status", "quit", or None if unrecognised
    """
    words = text.strip().lower().split()
    if not words:
        return None

    verb = words[0]
    if verb in QUIT_COMMANDS:
        return "quit"
    if verb == "status":
        return "status"
    if verb == "auto":
        return ToggleAuto()
    if verb == "angle" and len(words) == 2:
        verb = words[1]
    if verb.lstrip('-').isdigit():
        return SetAngle(int(verb))
    for direction in DriveDirection:
        if verb == direction.value.lower():
            return Drive(direction)
    return None


def _read_operator_input(console: RoverConsole, stream=None):
    """Stdin reader thread: parses commands and queues them."""
    stream = stream or sys.stdin
    for line in stream:
        command = parse_command(line)
        if command == "quit":
            break
        if command == "status":
            logger.info(f"Status: {console.status}")
        elif command is None:
            if line.strip():
                logger.warning(f"Unknown command: {line.strip()}")
        else:
            console.submit(command)
    console.request_stop()


def build_console(args) -> RoverConsole:
    """Create the console from parsed arguments."""
    config = ConsoleConfig(
        radar=LinkConfig(name=RADAR_LINK, port=args.radar_port, baudrate=args.baudrate),
        battery=(LinkConfig(name=BATTERY_LINK, port=args.battery_port, baudrate=args.baudrate)
                 if args.battery_port else None),
        drive=(LinkConfig(name=DRIVE_LINK, port=args.drive_port, baudrate=args.drive_baudrate)
               if args.drive_port else None),
    )
    config.control.laser_trigger_distance_cm = args.trigger_distance
    config.max_expected_power_mw = args.max_power

    links = None
    if args.simulation:
        logger.info("Running in SIMULATION mode")
        sim = SimulationConfig(seed=args.seed)
        links = {
            RADAR_LINK: SimulatedRadarLink(sim=sim),
            BATTERY_LINK: SimulatedBatteryLink(sim=sim),
            DRIVE_LINK: MockSerialLink(LinkConfig(name=DRIVE_LINK, port="sim://drive")),
        }

    return RoverConsole(config, presentation=LoggingPresentation(), links=links)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Remote vehicle radar/laser console")
    parser.add_argument("--radar-port", default="/dev/ttyACM0",
                        help="Radar/servo/laser MCU serial port")
    parser.add_argument("--battery-port", default="/dev/ttyUSB0",
                        help="Battery telemetry serial port (empty to disable)")
    parser.add_argument("--drive-port", default="",
                        help="Drive base serial port (optional)")
    parser.add_argument("--baudrate", type=int, default=115200,
                        help="Baud rate for radar and battery links")
    parser.add_argument("--drive-baudrate", type=int, default=9600,
                        help="Baud rate for the drive link")
    parser.add_argument("--trigger-distance", type=float, default=50.0,
                        help="Laser trigger distance (cm)")
    parser.add_argument("--max-power", type=float, default=5000.0,
                        help="Power gauge full scale (mW)")
    parser.add_argument("--simulation", "-s", action="store_true",
                        help="Run against a simulated vehicle")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for simulation")
    parser.add_argument("--auto", action="store_true",
                        help="Start in auto sweep")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Verbose logging")

    args = parser.parse_args()

    # Setup logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    console = build_console(args)

    # Signal handler for graceful shutdown
    def signal_handler(sig, frame):
        logger.info("Shutdown signal received")
        console.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    if not console.start():
        logger.warning("Radar link unavailable; console running without it")

    if args.auto:
        console.submit(ToggleAuto())

    reader = threading.Thread(target=_read_operator_input, args=(console,), daemon=True)
    reader.start()

    logger.info("Console running. Type 'quit' or press Ctrl+C to stop.")
    console.run()
    console.stop()


if __name__ == "__main__":
    main()

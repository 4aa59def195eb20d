"""
Serial Link
===========

Duplex line link to a vehicle microcontroller.

Reads are non-blocking polls from the console loop; there is no reader
thread, so everything received is handled on the loop's thread.

Outbound commands (console → MCU), newline terminated:
    <angle>         - servo angle 0-180
    LASER_ON        - laser interlock engaged
    LASER_OFF       - laser interlock released
    AUTO            - auto sweep running
    MANUAL          - manual control
    FORWARD|BACKWARD|LEFT|RIGHT - drive base (drive link only)

Writes are best effort: a failed write is logged and reported, never raised.
"""

from dataclasses import dataclass
from typing import List, Optional
import logging

import serial

logger = logging.getLogger(__name__)


@dataclass
class LinkConfig:
    """Configuration for one serial link."""
    name: str = "radar"
    port: str = "/dev/ttyACM0"
    baudrate: int = 115200
    timeout: float = 0.0            # Non-blocking reads
    write_timeout: float = 0.1


class SerialLink:
    """
    pyserial-backed line link.

    A link that failed to open, or was closed after an I/O error, stays
    usable: reads return nothing and writes report failure.
    """

    def __init__(self, config: Optional[LinkConfig] = None):
        self.config = config or LinkConfig()
        self._serial: Optional[serial.Serial] = None

        # Statistics
        self._commands_sent = 0
        self._write_failures = 0
        self._bytes_received = 0

    @property
    def name(self) -> str:
        return self.config.name

    def start(self) -> bool:
        """Open the serial port."""
        try:
            self._serial = serial.Serial(
                port=self.config.port,
                baudrate=self.config.baudrate,
                timeout=self.config.timeout,
                write_timeout=self.config.write_timeout,
            )
            # Clear any stale data
            self._serial.reset_input_buffer()
            logger.info(f"{self.name} link open on {self.config.port} @ {self.config.baudrate}")
            return True

        except (serial.SerialException, OSError) as e:
            logger.error(f"Failed to open {self.name} port {self.config.port}: {e}")
            self._serial = None
            return False

    def stop(self):
        """Close the port. Safe to call more than once."""
        if self._serial:
            try:
                self._serial.close()
            except (serial.SerialException, OSError) as e:
                logger.warning(f"Error closing {self.name} port: {e}")
            self._serial = None
            logger.info(f"{self.name} link closed")

    @property
    def is_open(self) -> bool:
        return self._serial is not None and self._serial.is_open

    def send_command(self, command: str) -> bool:
        """
        Send one newline-terminated command.

        Returns:
            True if the bytes were handed to the port
        """
        if not self.is_open:
            self._write_failures += 1
            return False

        try:
            self._serial.write(self._frame(command))
        except (serial.SerialException, OSError) as e:
            self._write_failures += 1
            logger.warning(f"Failed to send {command!r} on {self.name}: {e}")
            return False

        self._commands_sent += 1
        return True

    def read_available(self) -> bytes:
        """Return whatever bytes are waiting, without blocking."""
        if not self.is_open:
            return b""

        try:
            waiting = self._serial.in_waiting
            if not waiting:
                return b""
            data = self._serial.read(waiting)
        except (serial.SerialException, OSError) as e:
            logger.error(f"Read error on {self.name}, closing link: {e}")
            self.stop()
            return b""

        self._bytes_received += len(data)
        return data

    @staticmethod
    def _frame(command: str) -> bytes:
        return (command.rstrip('\n') + '\n').encode('utf-8')

    @property
    def stats(self) -> dict:
        """Get link statistics."""
        return {
            "commands_sent": self._commands_sent,
            "write_failures": self._write_failures,
            "bytes_received": self._bytes_received,
        }


class MockSerialLink(SerialLink):
    """In-memory link for tests and simulation."""

    def __init__(self, config: Optional[LinkConfig] = None):
        super().__init__(config)
        self._open = False
        self._inbound = bytearray()
        self.sent: List[str] = []
        self.fail_writes = False

    def start(self) -> bool:
        self._open = True
        logger.info(f"Mock {self.name} link started")
        return True

    def stop(self):
        if self._open:
            self._open = False
            logger.info(f"Mock {self.name} link stopped")

    @property
    def is_open(self) -> bool:
        return self._open

    def send_command(self, command: str) -> bool:
        if not self._open or self.fail_writes:
            self._write_failures += 1
            return False
        self.sent.append(command.rstrip('\n'))
        self._commands_sent += 1
        return True

    def inject(self, data):
        """Queue bytes (or text) as if received from the MCU."""
        if isinstance(data, str):
            data = data.encode('utf-8')
        self._inbound.extend(data)

    def read_available(self) -> bytes:
        if not self._open or not self._inbound:
            return b""
        data = bytes(self._inbound)
        self._inbound.clear()
        self._bytes_received += len(data)
        return data

    @property
    def written(self) -> bytes:
        """Everything sent so far, as it would appear on the wire."""
        return b"".join(self._frame(c) for c in self.sent)

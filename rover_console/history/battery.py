"""
Battery History
===============

Fixed window of recent battery samples for the history table, newest in
slot 0, plus the label and power-gauge formatting shared by the live
display and the table rows.
"""

import math
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Deque, Iterator, List, Optional, Tuple

from ..protocol.messages import BatterySample

DEFAULT_WINDOW = 7          # slot 0 plus six shifted rows
TIMESTAMP_FORMAT = "%H:%M:%S"


@dataclass(frozen=True)
class HistoryEntry:
    """One row of the battery history table."""
    timestamp: str
    bus_voltage: float
    shunt_voltage: float
    load_voltage: float
    current: float
    power: float

    @classmethod
    def from_sample(cls, sample: BatterySample,
                    now: Optional[datetime] = None) -> 'HistoryEntry':
        """Stamp a sample with wall-clock time (hh:mm:ss)."""
        now = now or datetime.now()
        return cls(
            timestamp=now.strftime(TIMESTAMP_FORMAT),
            bus_voltage=sample.bus_voltage,
            shunt_voltage=sample.shunt_voltage,
            load_voltage=sample.load_voltage,
            current=sample.current,
            power=sample.power,
        )

    def labels(self) -> Tuple[str, ...]:
        """Formatted cells: time, bus, shunt, load, current, power."""
        return (self.timestamp,) + format_battery_labels(
            self.bus_voltage, self.shunt_voltage, self.load_voltage,
            self.current, self.power,
        )


class BatteryHistory:
    """
    Shift-down history window.

    push() moves every row down one slot, dropping whatever falls off the
    end, and installs the new entry at slot 0.
    """

    def __init__(self, window: int = DEFAULT_WINDOW):
        if window < 1:
            raise ValueError(f"window must be positive, got {window}")
        self.window = window
        self._slots: Deque[HistoryEntry] = deque(maxlen=window)

    def push(self, entry: HistoryEntry):
        self._slots.appendleft(entry)

    @property
    def slots(self) -> List[HistoryEntry]:
        """Current rows, most recent first."""
        return list(self._slots)

    @property
    def latest(self) -> Optional[HistoryEntry]:
        return self._slots[0] if self._slots else None

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self._slots)


def _round_half_away(value: float) -> int:
    if value >= 0:
        return int(math.floor(value + 0.5))
    return int(math.ceil(value - 0.5))


def power_percentage(power: float, max_expected_power: float) -> int:
    """
    Power as a percentage of the expected maximum.

    Rounded half away from zero and clamped to 0-100.
    """
    if max_expected_power <= 0:
        return 0
    percentage = _round_half_away(power / max_expected_power * 100.0)
    return max(0, min(100, percentage))


def format_power_text(power: float, max_expected_power: float) -> str:
    """Gauge caption, e.g. '36% (1800.0mW / 5000.0mW)'."""
    percentage = power_percentage(power, max_expected_power)
    return f"{percentage}% ({power:.1f}mW / {max_expected_power:.1f}mW)"


def format_battery_labels(bus_voltage: float, shunt_voltage: float,
                          load_voltage: float, current: float,
                          power: float) -> Tuple[str, str, str, str, str]:
    return (
        f"{bus_voltage:.2f} V",
        f"{shunt_voltage:.2f} mV",
        f"{load_voltage:.2f} V",
        f"{current:.2f} mA",
        f"{power:.2f} mW",
    )

"""
Telemetry History
=================

Bounded histories feeding the radar scope and the battery table.
"""

from .detections import DetectionPoint, DetectionHistory

from .battery import (
    HistoryEntry,
    BatteryHistory,
    power_percentage,
    format_power_text,
    format_battery_labels,
)

__all__ = [
    'DetectionPoint',
    'DetectionHistory',
    'HistoryEntry',
    'BatteryHistory',
    'power_percentage',
    'format_power_text',
    'format_battery_labels',
]

"""
Radar scope geometry: needle polygon and detection placement in scene
coordinates (origin top-left, y down).
"""

import math
from dataclasses import dataclass
from typing import List, Tuple

from ..history.detections import DetectionPoint

Point = Tuple[float, float]


@dataclass
class ScopeGeometry:
    """Scene layout of the radar scope background image."""
    origin_x: float = 505.0
    origin_y: float = 495.0
    needle_radius: float = 445.0
    needle_half_width_rad: float = 0.05

    def needle(self, angle_deg: float) -> List[Point]:
        """Needle triangle: upper edge tip, origin, lower edge tip."""
        rad = math.radians(angle_deg)
        upper = rad + self.needle_half_width_rad
        lower = rad - self.needle_half_width_rad
        return [
            self._project(upper, self.needle_radius),
            (self.origin_x, self.origin_y),
            self._project(lower, self.needle_radius),
        ]

    def place(self, point: DetectionPoint) -> Point:
        """Scene position of a detection."""
        return (self.origin_x + point.x, self.origin_y - point.y)

    def _project(self, rad: float, radius: float) -> Point:
        return (
            radius * math.cos(rad) + self.origin_x,
            -radius * math.sin(rad) + self.origin_y,
        )

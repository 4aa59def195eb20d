"""
Detection History
=================

FIFO of recent radar detections in cartesian scope coordinates.
"""

import math
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterator, List, Optional
import logging

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 50


@dataclass(frozen=True)
class DetectionPoint:
    """Detection in scope space (cm, y up)."""
    x: float
    y: float

    @classmethod
    def from_polar(cls, angle_deg: float, distance: float) -> 'DetectionPoint':
        """Convert a radar angle (degrees) and distance to x/y."""
        rad = math.radians(angle_deg)
        return cls(x=distance * math.cos(rad), y=distance * math.sin(rad))


class DetectionHistory:
    """
    Bounded history of detections, oldest first.

    Each push evicts at most one point, matching a producer that adds one
    point per radar line.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._points: Deque[DetectionPoint] = deque()
        self._evicted = 0

    def push(self, point: DetectionPoint) -> Optional[DetectionPoint]:
        """
        Add the newest detection.

        Returns:
            The evicted oldest point, or None if nothing was evicted
        """
        self._points.append(point)
        if len(self._points) > self.capacity:
            self._evicted += 1
            return self._points.popleft()
        return None

    def clear(self) -> List[DetectionPoint]:
        """Remove all points and return them."""
        removed = list(self._points)
        self._points.clear()
        self._evicted += len(removed)
        return removed

    @property
    def newest(self) -> Optional[DetectionPoint]:
        return self._points[-1] if self._points else None

    @property
    def points(self) -> List[DetectionPoint]:
        """Points in arrival order."""
        return list(self._points)

    def as_array(self) -> np.ndarray:
        """Points as an (N, 2) float array of x, y."""
        if not self._points:
            return np.empty((0, 2))
        return np.array([(p.x, p.y) for p in self._points], dtype=float)

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[DetectionPoint]:
        return iter(self._points)

    @property
    def stats(self) -> dict:
        return {
            "size": len(self._points),
            "evicted": self._evicted,
        }

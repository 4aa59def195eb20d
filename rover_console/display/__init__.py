"""
Display Sinks
=============

Presentation interface consumed by the console, plus scope geometry.
The console only pushes final values here and never reads them back.
"""

from .geometry import ScopeGeometry

from .presentation import (
    Presentation,
    LoggingPresentation,
)

__all__ = [
    'ScopeGeometry',
    'Presentation',
    'LoggingPresentation',
]

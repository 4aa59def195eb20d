"""
Serial Protocol
===============

Line framing and message decoding for the vehicle serial links.
"""

from .framing import LineFramer

from .messages import (
    Message,
    RadarSample,
    BatterySample,
    SensorSample,
    LaserEvent,
    Unknown,
    MessageDecoder,
    SensorDecoder,
    decode,
)

__all__ = [
    'LineFramer',
    'Message',
    'RadarSample',
    'BatterySample',
    'SensorSample',
    'LaserEvent',
    'Unknown',
    'MessageDecoder',
    'SensorDecoder',
    'decode',
]

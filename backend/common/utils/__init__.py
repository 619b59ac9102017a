"""Geometry and duration helpers shared by the dispatch apps."""

from .geo import calculate_distance, drive_seconds, round_coordinate
from .timefmt import (
    minutes_between,
    minutes_since,
    format_duration,
    wait_severity,
)

__all__ = [
    "calculate_distance",
    "drive_seconds",
    "round_coordinate",
    "minutes_between",
    "minutes_since",
    "format_duration",
    "wait_severity",
]

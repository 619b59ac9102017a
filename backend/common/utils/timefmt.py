"""
Duration helpers for the dispatch board (wait times, ride times).
"""

from datetime import datetime
from typing import Optional

from django.utils import timezone


def minutes_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[int]:
    """Whole minutes from start to end, or None if either is missing."""
    if not start or not end:
        return None
    return int((end - start).total_seconds() // 60)


def minutes_since(start: Optional[datetime], now: Optional[datetime] = None) -> int:
    """Whole minutes elapsed since start (0 if start is missing)."""
    if not start:
        return 0
    now = now or timezone.now()
    return max(0, int((now - start).total_seconds() // 60))


def format_duration(minutes: Optional[int]) -> str:
    """
    Format a duration for display.

    None -> "N/A", 0 -> "< 1m", 42 -> "42m", 65 -> "1h 5m"
    """
    if minutes is None:
        return "N/A"
    if minutes < 1:
        return "< 1m"
    if minutes < 60:
        return f"{minutes}m"
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}m"


def wait_severity(minutes: int) -> str:
    """Colour band used by the dispatch board for how long a patron has waited."""
    if minutes < 5:
        return "green"
    if minutes < 10:
        return "yellow"
    if minutes < 15:
        return "orange"
    return "red"

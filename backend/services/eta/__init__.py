"""
ETA estimation service.

Estimates how soon the nearest car on the road can reach each pending
pickup, using the maps service with caching and a straight-line fallback.
"""

from .estimator import (
    EtaRefreshResult,
    refresh_event_etas,
    get_travel_times,
    fallback_seconds,
)

__all__ = [
    "EtaRefreshResult",
    "refresh_event_etas",
    "get_travel_times",
    "fallback_seconds",
]

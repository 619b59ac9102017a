"""
Weather and traffic advisories for dispatchers and car crews.
"""

from .weather import (
    SAFE,
    CAUTION,
    WARNING,
    DANGER,
    classify_weather,
    get_current_weather,
    weather_alert,
    weather_emoji,
    poll_event_weather,
    get_event_advisory,
)
from .traffic import get_traffic_conditions, traffic_alert, get_ride_traffic

__all__ = [
    "SAFE",
    "CAUTION",
    "WARNING",
    "DANGER",
    "classify_weather",
    "get_current_weather",
    "weather_alert",
    "weather_emoji",
    "poll_event_weather",
    "get_event_advisory",
    "get_traffic_conditions",
    "traffic_alert",
    "get_ride_traffic",
]

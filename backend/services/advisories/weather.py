"""
Weather advisories from OpenWeatherMap.

Dispatch polls the current weather at the event location and warns the
dispatch board when driving conditions get worse.
"""

import logging
from typing import Dict, Any, Optional

import requests
from django.conf import settings
from django.core.cache import cache

from events.models import Event

logger = logging.getLogger(__name__)

SAFE = "safe"
CAUTION = "caution"
WARNING = "warning"
DANGER = "danger"

DEMO_WEATHER = {
    "temp": 72,
    "condition": "Clear",
    "description": "Clear sky",
    "humidity": 65,
    "wind_speed": 5,
    "icon": "01d",
    "severity": SAFE,
}

WEATHER_EMOJI = {
    "Clear": "☀️",
    "Clouds": "☁️",
    "Rain": "🌧️",
    "Drizzle": "🌦️",
    "Thunderstorm": "⛈️",
    "Snow": "❄️",
    "Mist": "🌫️",
    "Fog": "🌫️",
}
DEFAULT_EMOJI = "🌡️"


def classify_weather(condition_id: int) -> str:
    """Severity for an OpenWeatherMap condition code."""
    if 200 <= condition_id < 300:
        return DANGER
    if 600 <= condition_id < 700:
        return WARNING if condition_id >= 602 else CAUTION
    if 500 <= condition_id < 600:
        return WARNING if condition_id >= 502 else CAUTION
    if 700 <= condition_id < 800:
        return CAUTION
    return SAFE


def get_current_weather(lat, lon) -> Optional[Dict[str, Any]]:
    """
    Current weather at a point, in imperial units.

    Without OPENWEATHER_API_KEY a fixed clear-sky reading is returned so
    local setups still show an advisory panel. Failures return None.
    """
    api_key = settings.OPENWEATHER_API_KEY
    if not api_key:
        return dict(DEMO_WEATHER)

    url = f"{settings.OPENWEATHER_BASE_URL.rstrip('/')}/weather"
    try:
        response = requests.get(
            url,
            params={"lat": float(lat), "lon": float(lon), "appid": api_key, "units": "imperial"},
            timeout=settings.MAPS_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        data = response.json()

        condition = data["weather"][0]
        return {
            "temp": round(data["main"]["temp"]),
            "condition": condition["main"],
            "description": condition["description"],
            "humidity": data["main"]["humidity"],
            "wind_speed": round(data["wind"]["speed"]),
            "icon": condition["icon"],
            "severity": classify_weather(condition["id"]),
        }
    except (requests.RequestException, ValueError, KeyError, IndexError) as e:
        logger.error("Weather lookup failed for (%s, %s): %s", lat, lon, e)
        return None


def weather_alert(weather: Optional[Dict[str, Any]]) -> Optional[str]:
    if not weather:
        return None

    severity = weather.get("severity")
    description = weather.get("description", "")
    if severity == DANGER:
        return f"DANGEROUS CONDITIONS: {description}. Consider suspending operations."
    if severity == WARNING:
        return f"HAZARDOUS WEATHER: {description}. Drive with extreme caution."
    if severity == CAUTION:
        return f"ADVERSE CONDITIONS: {description}. Drive carefully."
    return None


def weather_emoji(condition: str) -> str:
    return WEATHER_EMOJI.get(condition, DEFAULT_EMOJI)


# ---------------------- Event polling ----------------------

def _cache_key(event_id: int) -> str:
    return f"weather:event:{event_id}"


def get_event_advisory(event: Event) -> Optional[Dict[str, Any]]:
    """Latest cached advisory for the event, or None if never polled."""
    return cache.get(_cache_key(event.id))


def poll_event_weather(event: Event) -> Optional[Dict[str, Any]]:
    """
    Fetch weather at the event location, cache it, and broadcast an
    advisory to the dispatch board when the severity changed.
    """
    if event.latitude is None or event.longitude is None:
        logger.debug("Event %s has no coordinates, skipping weather poll", event.id)
        return None

    weather = get_current_weather(event.latitude, event.longitude)
    if weather is None:
        return None

    previous = get_event_advisory(event)
    advisory = {
        **weather,
        "alert": weather_alert(weather),
        "emoji": weather_emoji(weather["condition"]),
    }
    cache.set(_cache_key(event.id), advisory, settings.WEATHER_CACHE_SECONDS)

    if previous is None or previous.get("severity") != advisory["severity"]:
        logger.info(
            "Weather severity for event %s is now %s",
            event.id, advisory["severity"]
        )
        from realtime.notifications import notify_event_group
        notify_event_group(event.id, "weather_advisory", {"weather": advisory})

    return advisory

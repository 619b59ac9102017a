"""
Traffic advisories for active rides, from the Directions API.
"""

import logging
from typing import Dict, Any, Optional, Tuple

from cars.services import get_fresh_car_locations
from rides.models import Ride
from services.maps import get_maps_client, MapsError
from .weather import SAFE, CAUTION, WARNING

logger = logging.getLogger(__name__)

HEAVY_DELAY_MINUTES = 15
MODERATE_DELAY_MINUTES = 5


def get_traffic_conditions(origin: Tuple[float, float], destination: Tuple[float, float]) -> Optional[Dict[str, Any]]:
    """
    Current driving conditions between two points.

    Returns:
        {
            "duration": int,              # minutes without traffic
            "duration_in_traffic": int,   # minutes with current traffic
            "delay": int,                 # extra minutes caused by traffic
            "traffic_level": "light" | "moderate" | "heavy",
            "severity": str,
            "distance": str,
        }
        or None when the maps service is unavailable
    """
    try:
        leg = get_maps_client().directions(origin, destination)
    except MapsError as e:
        logger.warning("Traffic lookup failed: %s", e)
        return None

    duration = leg["duration"]
    in_traffic = leg["duration_in_traffic"]
    delay = round((in_traffic - duration) / 60)

    if delay > HEAVY_DELAY_MINUTES:
        level, severity = "heavy", WARNING
    elif delay > MODERATE_DELAY_MINUTES:
        level, severity = "moderate", CAUTION
    else:
        level, severity = "light", SAFE

    return {
        "duration": round(duration / 60),
        "duration_in_traffic": round(in_traffic / 60),
        "delay": delay,
        "traffic_level": level,
        "severity": severity,
        "distance": leg["distance_text"],
    }


def traffic_alert(traffic: Optional[Dict[str, Any]]) -> Optional[str]:
    if not traffic:
        return None
    if traffic["traffic_level"] == "heavy":
        return f"HEAVY TRAFFIC: +{traffic['delay']} min delay. Consider alternative routes."
    if traffic["traffic_level"] == "moderate":
        return f"MODERATE TRAFFIC: +{traffic['delay']} min delay expected."
    return None


def get_ride_traffic(ride: Ride) -> Optional[Dict[str, Any]]:
    """
    Traffic from the ride's car to where it is heading next: the pickup
    before the patron is picked up, the dropoff afterwards.
    """
    if ride.status != "active" or not ride.car_number:
        return None

    location = get_fresh_car_locations(ride.event).get(ride.car_number)
    if location is None:
        return None

    if ride.picked_up_at is None:
        if not ride.has_pickup_coordinates:
            return None
        target = (float(ride.pickup_latitude), float(ride.pickup_longitude))
        heading_to = "pickup"
    else:
        if not ride.has_dropoff_coordinates:
            return None
        target = (float(ride.dropoff_latitude), float(ride.dropoff_longitude))
        heading_to = "dropoff"

    traffic = get_traffic_conditions(
        (float(location.latitude), float(location.longitude)),
        target,
    )
    if traffic is None:
        return None

    traffic["heading_to"] = heading_to
    traffic["alert"] = traffic_alert(traffic)
    return traffic

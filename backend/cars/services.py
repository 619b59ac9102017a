import time
import logging
from datetime import timedelta
from typing import Dict, Optional

from django.conf import settings
from django.utils import timezone

from cars.models import CarLocation
from events.models import Event

logger = logging.getLogger(__name__)


class InvalidCarNumberError(Exception):
    pass


# Rate limiting cache (in-memory, per process)
_last_broadcast_times: Dict[tuple, float] = {}


def _should_broadcast(event_id: int, car_number: int, min_interval: Optional[float] = None) -> bool:
    """Check if enough time has passed since the last broadcast for this car."""
    if min_interval is None:
        min_interval = getattr(settings, "CAR_LOCATION_BROADCAST_INTERVAL", 2)
    key = (event_id, car_number)
    now = time.time()
    last_time = _last_broadcast_times.get(key, 0)
    if now - last_time < min_interval:
        return False
    _last_broadcast_times[key] = now
    return True


def update_car_location(event: Event, car_number: int, lat, lon, force: bool = False) -> CarLocation:
    """
    Store the latest ping of a car (one row per car per event) and push it
    to the dispatch board.
    """
    if car_number < 1 or car_number > event.available_cars:
        raise InvalidCarNumberError(
            f"Car {car_number} does not exist (event has {event.available_cars} cars)"
        )

    location, _ = CarLocation.objects.update_or_create(
        event=event,
        car_number=car_number,
        defaults={
            "latitude": lat,
            "longitude": lon,
            "updated_at": timezone.now(),
        },
    )

    if force or _should_broadcast(event.id, car_number):
        from realtime.notifications import notify_event_group
        notify_event_group(event.id, "car_location_updated", {
            "car_number": car_number,
            "latitude": float(lat),
            "longitude": float(lon),
            "updated_at": location.updated_at.isoformat(),
        })

    return location


def get_fresh_car_locations(event: Event, max_age: Optional[int] = None) -> Dict[int, CarLocation]:
    """
    Car locations recent enough to route from, keyed by car number.

    Cars beyond the event's current car count are ignored.
    """
    if max_age is None:
        max_age = getattr(settings, "CAR_LOCATION_MAX_AGE_SECONDS", 300)
    cutoff = timezone.now() - timedelta(seconds=max_age)

    locations = CarLocation.objects.filter(
        event=event,
        updated_at__gte=cutoff,
        car_number__lte=event.available_cars,
    )
    return {loc.car_number: loc for loc in locations}

"""
Pickup time estimation for pending rides.

For every pending ride with coordinates, find the car on the road that can
reach the pickup fastest and write the estimate back onto the ride.

Flow:
    1. Throttle: at most one refresh per event every ETA_MIN_REFRESH_SECONDS
    2. Reuse cached car -> pickup travel times (keyed by rounded coordinates)
    3. Fetch the missing pairs from the Distance Matrix in chunks
    4. Fall back to straight-line distance when the maps service is unavailable
    5. Write estimates with a plain UPDATE that leaves ride.version alone
"""

import math
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

from cars.services import get_fresh_car_locations
from common.utils import calculate_distance, drive_seconds, round_coordinate
from events.models import Event
from rides.models import Ride
from services.maps import get_maps_client, MapsError

logger = logging.getLogger(__name__)

LatLon = Tuple[float, float]


@dataclass
class EtaRefreshResult:
    updated: int = 0
    skipped: bool = False
    reason: str = ""
    used_fallback: bool = False


# ---------------------- Cache keys ----------------------

def _throttle_key(event_id: int) -> str:
    return f"eta:refresh:{event_id}"


def _pair_key(origin: LatLon, destination: LatLon) -> str:
    o_lat, o_lon = (round_coordinate(v) for v in origin)
    d_lat, d_lon = (round_coordinate(v) for v in destination)
    return f"eta:pair:{o_lat},{o_lon}:{d_lat},{d_lon}"


# ---------------------- Travel times ----------------------

def fallback_seconds(origin: LatLon, destination: LatLon) -> float:
    """Straight-line travel time at ETA_FALLBACK_SPEED_KMH."""
    meters = calculate_distance(origin[0], origin[1], destination[0], destination[1])
    return drive_seconds(meters, settings.ETA_FALLBACK_SPEED_KMH)


def get_travel_times(origins: List[LatLon], destinations: List[LatLon]) -> Tuple[Dict[Tuple[int, int], Optional[float]], bool]:
    """
    Travel seconds for every (origin index, destination index) pair.

    Returns (times, used_fallback). Pairs the maps service marks as
    unreachable are None.
    """
    times: Dict[Tuple[int, int], Optional[float]] = {}
    missing_destinations = set()

    for oi, origin in enumerate(origins):
        for di, destination in enumerate(destinations):
            cached = cache.get(_pair_key(origin, destination))
            if cached is None:
                missing_destinations.add(di)
            else:
                times[(oi, di)] = cached

    if not missing_destinations:
        return times, False

    wanted = sorted(missing_destinations)
    client = get_maps_client()
    used_fallback = False

    if client.is_configured:
        try:
            for chunk in _chunked(wanted, len(origins)):
                chunk_points = [destinations[di] for di in chunk]
                matrix = client.distance_matrix(origins, chunk_points)
                for oi, row in enumerate(matrix):
                    for offset, seconds in enumerate(row):
                        di = chunk[offset]
                        times[(oi, di)] = seconds
                        if seconds is not None:
                            cache.set(
                                _pair_key(origins[oi], destinations[di]),
                                seconds,
                                settings.ETA_CACHE_SECONDS,
                            )
        except MapsError as e:
            logger.warning("Distance matrix failed, using straight-line estimates: %s", e)
            used_fallback = True
    else:
        used_fallback = True

    if used_fallback:
        for oi, origin in enumerate(origins):
            for di in wanted:
                if (oi, di) not in times:
                    times[(oi, di)] = fallback_seconds(origin, destinations[di])

    return times, used_fallback


def _chunked(indexes: List[int], count_origins: int):
    """Split destinations so origins x destinations stays under ETA_MATRIX_MAX_ELEMENTS."""
    per_request = max(1, settings.ETA_MATRIX_MAX_ELEMENTS // max(1, count_origins))
    for start in range(0, len(indexes), per_request):
        yield indexes[start:start + per_request]


# ---------------------- Refresh ----------------------

def refresh_event_etas(event: Event, force: bool = False) -> EtaRefreshResult:
    """
    Recompute pickup estimates for the event's pending rides.

    Args:
        event: Event whose queue to refresh
        force: Skip the per-event throttle (manual refresh)
    """
    if not event.is_active:
        return EtaRefreshResult(skipped=True, reason="event_not_active")

    throttle_key = _throttle_key(event.id)
    if force:
        cache.set(throttle_key, True, settings.ETA_MIN_REFRESH_SECONDS)
    elif not cache.add(throttle_key, True, settings.ETA_MIN_REFRESH_SECONDS):
        return EtaRefreshResult(skipped=True, reason="rate_limited")

    rides = list(
        Ride.objects.filter(
            event=event,
            status="pending",
            pickup_latitude__isnull=False,
            pickup_longitude__isnull=False,
        ).order_by("requested_at", "id")
    )
    if not rides:
        return EtaRefreshResult(skipped=True, reason="no_pending_rides")

    locations = get_fresh_car_locations(event)
    if not locations:
        return EtaRefreshResult(skipped=True, reason="no_car_locations")

    car_numbers = sorted(locations)
    origins = [(float(locations[n].latitude), float(locations[n].longitude)) for n in car_numbers]
    destinations = [(float(r.pickup_latitude), float(r.pickup_longitude)) for r in rides]

    times, used_fallback = get_travel_times(origins, destinations)

    now = timezone.now()
    updated = 0
    estimates = []
    for di, ride in enumerate(rides):
        best = None
        for oi, car_number in enumerate(car_numbers):
            seconds = times.get((oi, di))
            if seconds is None:
                continue
            if best is None or seconds < best[0]:
                best = (seconds, car_number)
        if best is None:
            continue

        minutes = math.ceil(best[0] / 60)
        # status filter: a ride assigned meanwhile keeps its cleared ETA
        updated += Ride.objects.filter(id=ride.id, status="pending").update(
            estimated_pickup_minutes=minutes,
            fastest_car_number=best[1],
            eta_calculated_at=now,
        )
        estimates.append({
            "ride_id": ride.id,
            "estimated_pickup_minutes": minutes,
            "fastest_car_number": best[1],
        })

    logger.info(
        "ETA refresh for event %s: %s rides updated (fallback=%s)",
        event.id, updated, used_fallback
    )

    if estimates:
        from realtime.notifications import notify_event_group
        notify_event_group(event.id, "etas_updated", {
            "estimates": estimates,
            "calculated_at": now.isoformat(),
            "used_fallback": used_fallback,
        })

    return EtaRefreshResult(updated=updated, used_fallback=used_fallback)

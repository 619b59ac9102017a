"""Celery tasks for ride-related background processing."""

from celery import shared_task
import logging

logger = logging.getLogger(__name__)


@shared_task
def refresh_event_etas_task(event_id: int, force: bool = False):
    """
    Recompute pickup estimates for one event.

    Scheduled after new requests and geocoding; throttled inside the
    estimator so bursts of requests cost one maps call.
    """
    from events.models import Event
    from services.eta import refresh_event_etas

    event = Event.objects.filter(id=event_id).first()
    if event is None:
        logger.warning("Event %s not found for ETA refresh", event_id)
        return None

    result = refresh_event_etas(event, force=force)
    if result.skipped:
        logger.debug("ETA refresh for event %s skipped: %s", event_id, result.reason)
    return result.updated


@shared_task
def refresh_active_event_etas_task():
    """Periodic (beat) ETA refresh of the active event."""
    from events.services import get_active_event

    event = get_active_event()
    if event is None:
        return None
    return refresh_event_etas_task(event.id)


@shared_task
def geocode_ride_task(ride_id: int):
    """
    Fill in missing pickup/dropoff coordinates of a ride from its addresses.

    Coordinates are written with a plain UPDATE so the dispatcher's copy of
    the ride does not go stale; the boards get the new coordinates as a
    ride_updated push.
    """
    from realtime.notifications import notify_ride_changed
    from rides.models import Ride
    from services.maps import get_maps_client, MapsError

    ride = Ride.objects.filter(id=ride_id).first()
    if ride is None:
        logger.warning("Ride %s not found for geocoding", ride_id)
        return False

    client = get_maps_client()
    if not client.is_configured:
        logger.debug("Maps not configured, skipping geocoding of ride %s", ride_id)
        return False

    updates = {}
    try:
        if not ride.has_pickup_coordinates:
            point = client.geocode(ride.pickup)
            if point:
                updates["pickup_latitude"], updates["pickup_longitude"] = point
        if not ride.has_dropoff_coordinates:
            point = client.geocode(ride.dropoff)
            if point:
                updates["dropoff_latitude"], updates["dropoff_longitude"] = point
    except MapsError as e:
        logger.warning("Geocoding failed for ride %s: %s", ride_id, e)

    if updates:
        for key in updates:
            updates[key] = round(updates[key], 6)
        Ride.objects.filter(id=ride_id).update(**updates)
        logger.info("Geocoded ride %s: %s", ride_id, sorted(updates))
        ride.refresh_from_db()
        notify_ride_changed(ride, "geocoded")

    if "pickup_latitude" in updates and ride.status == "pending":
        refresh_event_etas_task.delay(ride.event_id)
    return bool(updates)


@shared_task
def poll_active_event_weather_task():
    """Periodic (beat) weather check for the active event."""
    from events.services import get_active_event
    from services.advisories import poll_event_weather

    event = get_active_event()
    if event is None:
        return None
    advisory = poll_event_weather(event)
    return advisory["severity"] if advisory else None

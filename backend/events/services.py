"""
Event (operating night) lifecycle and car roster management.
"""

import logging
from typing import Iterable, Optional, Dict, Any

from django.db import transaction
from django.utils import timezone

from events.models import Event, CarAssignment
from common.utils import minutes_between

logger = logging.getLogger(__name__)


class EventNotFoundError(Exception):
    """Raised when an event cannot be found."""
    pass


class EventStateError(Exception):
    """Raised when an event is not in the right state for the operation."""
    pass


class RosterError(Exception):
    """Raised when a car roster update is invalid."""
    pass


def get_event(event_id: int) -> Event:
    try:
        return Event.objects.get(id=event_id)
    except Event.DoesNotExist:
        raise EventNotFoundError(f"Event {event_id} not found")


def create_event(name: str, event_date, actor=None, **fields) -> Event:
    event = Event.objects.create(name=name, event_date=event_date, created_by=actor, **fields)
    logger.info("Event %s created by %s", event.id, getattr(actor, 'username', None))
    return event


def get_active_event() -> Optional[Event]:
    """Return the currently active event, if any."""
    return Event.objects.filter(status='active').order_by('-activated_at').first()


@transaction.atomic
def activate_event(event: Event, actor=None) -> Event:
    """
    Open an event for ride requests and dispatch.

    Only one event may be active at a time.
    """
    event = Event.objects.select_for_update().get(id=event.id)
    if event.status != 'pending':
        raise EventStateError(f"Cannot activate - event is {event.status}")

    if Event.objects.filter(status='active').exclude(id=event.id).exists():
        raise EventStateError("Another event is already active. End it first.")

    event.status = 'active'
    event.activated_at = timezone.now()
    event.activated_by = actor
    event.save(update_fields=['status', 'activated_at', 'activated_by'])

    logger.info("Event %s activated by %s", event.id, getattr(actor, 'username', None))
    _notify_status_changed(event)
    return event


@transaction.atomic
def end_event(event: Event) -> Event:
    event = Event.objects.select_for_update().get(id=event.id)
    if event.status != 'active':
        raise EventStateError(f"Cannot end - event is {event.status}")

    event.status = 'completed'
    event.ended_at = timezone.now()
    event.save(update_fields=['status', 'ended_at'])

    logger.info("Event %s ended", event.id)
    _notify_status_changed(event)
    return event


@transaction.atomic
def set_available_cars(event: Event, count: int) -> Event:
    """Change the number of cars on the road; rosters beyond the new count are dropped."""
    if count < 0:
        raise RosterError("Car count cannot be negative")

    event = Event.objects.select_for_update().get(id=event.id)
    event.available_cars = count
    event.save(update_fields=['available_cars'])

    removed, _ = CarAssignment.objects.filter(event=event, car_number__gt=count).delete()
    if removed:
        logger.info("Dropped rosters above car %s for event %s", count, event.id)

    _notify_roster_changed(event)
    return event


@transaction.atomic
def set_car_roster(
    event: Event,
    car_number: int,
    member_ids: Iterable[int],
    driver_id: Optional[int] = None,
) -> CarAssignment:
    """
    Replace the member list of one car.

    A member sits in at most one car per event, so anyone placed here is
    removed from the other cars of the same event.
    """
    if car_number < 1 or car_number > event.available_cars:
        raise RosterError(
            f"Car {car_number} does not exist (event has {event.available_cars} cars)"
        )

    member_ids = list(dict.fromkeys(int(mid) for mid in member_ids))
    if driver_id is not None and driver_id not in member_ids:
        raise RosterError("Driver must be one of the car's members")

    from django.contrib.auth import get_user_model
    found = set(
        get_user_model().objects.filter(id__in=member_ids).values_list('id', flat=True)
    )
    missing = [mid for mid in member_ids if mid not in found]
    if missing:
        raise RosterError(f"Unknown member ids: {missing}")

    assignment, _ = CarAssignment.objects.select_for_update().get_or_create(
        event=event, car_number=car_number
    )

    for other in (
        CarAssignment.objects.select_for_update()
        .filter(event=event, members__id__in=member_ids)
        .exclude(id=assignment.id)
        .distinct()
    ):
        other.members.remove(*member_ids)
        if other.driver_id in member_ids:
            other.driver = None
        # Touch updated_at so readers see the roster changed
        other.save(update_fields=['driver', 'updated_at'])

    assignment.members.set(member_ids)
    assignment.driver_id = driver_id
    assignment.save(update_fields=['driver', 'updated_at'])

    logger.info(
        "Car %s roster for event %s set to %s (driver=%s)",
        car_number, event.id, member_ids, driver_id
    )
    _notify_roster_changed(event)
    return assignment


def get_event_report(event: Event) -> Dict[str, Any]:
    """Ride counts and average durations for one event."""
    from rides.models import Ride

    rides = list(Ride.objects.filter(event=event))
    counts = {status: 0 for status, _ in Ride.STATUS_CHOICES}
    wait_times, ride_times = [], []

    for ride in rides:
        counts[ride.status] += 1
        wait = minutes_between(ride.requested_at, ride.assigned_at)
        if wait is not None:
            wait_times.append(wait)
        if ride.status == 'completed':
            ride_time = minutes_between(ride.picked_up_at, ride.completed_at)
            if ride_time is not None:
                ride_times.append(ride_time)

    def _avg(values):
        return round(sum(values) / len(values), 1) if values else None

    return {
        "event_id": event.id,
        "total_rides": len(rides),
        "counts": counts,
        "riders_served": sum(r.riders for r in rides if r.status == 'completed'),
        "average_wait_minutes": _avg(wait_times),
        "average_ride_minutes": _avg(ride_times),
    }


def _notify_roster_changed(event: Event):
    from realtime.notifications import notify_event_group

    transaction.on_commit(
        lambda: notify_event_group(event.id, "roster_updated", {"event_id": event.id})
    )


def _notify_status_changed(event: Event):
    from realtime.notifications import notify_event_group

    transaction.on_commit(
        lambda: notify_event_group(event.id, "event_status_changed", {
            "event_id": event.id,
            "status": event.status,
        })
    )

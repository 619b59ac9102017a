"""
Core ride lifecycle operations.

Every dispatcher action takes the ride version the dispatcher last saw. The
write is a conditional UPDATE on (id, version) that also increments the
version, so when two dispatchers act on the same ride only the first write
lands and the second gets StaleRideError.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional, Dict, Any, List, Iterable
from dataclasses import dataclass

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from events.models import Event
from rides.models import Ride, RideTransition
from services.eligibility import (
    get_car_composition,
    get_event_compositions,
    ensure_car_eligible,
)
from .exceptions import (
    RideNotFoundError,
    RideNotAvailableError,
    StaleRideError,
    NoCarsAvailableError,
    InvalidCarError,
    EventNotActiveError,
    BlacklistedError,
    InvalidSplitError,
    DISPATCH_ERRORS,
    error_code_for,
)
from .screening import is_number_blocked, find_blacklisted_address

logger = logging.getLogger(__name__)

ETA_CLEARED = {
    "estimated_pickup_minutes": None,
    "fastest_car_number": None,
    "eta_calculated_at": None,
}

EDITABLE_FIELDS = (
    "patron_name",
    "phone",
    "pickup",
    "dropoff",
    "riders",
    "pickup_latitude",
    "pickup_longitude",
    "dropoff_latitude",
    "dropoff_longitude",
    "willing_to_combine",
)


@dataclass
class RideResult:
    """Result object for ride operations."""
    success: bool
    ride: Optional[Ride] = None
    message: str = ""
    error_code: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None


# ===================== Helpers =====================

def _get_ride(ride_id: int) -> Ride:
    try:
        return Ride.objects.select_related("event").get(id=ride_id)
    except Ride.DoesNotExist:
        raise RideNotFoundError("Ride not found")


def _ensure_event_active(event: Event):
    if not event.is_active:
        raise EventNotActiveError(f"Event '{event.name}' is not active")


def _check_version(ride: Ride, expected_version: int):
    """Cheap early rejection; the conditional UPDATE is the real guard."""
    if ride.version != expected_version:
        raise StaleRideError(
            f"Ride {ride.id} was changed by someone else "
            f"(you have v{expected_version}, current is v{ride.version})",
            current_version=ride.version,
        )


def _validate_car(event: Event, car_number: int):
    if event.available_cars == 0:
        raise NoCarsAvailableError(
            "No cars are available for this event. Update the car count first."
        )
    if car_number < 1 or car_number > event.available_cars:
        raise InvalidCarError(
            f"Car {car_number} does not exist (event has {event.available_cars} cars)"
        )


def _serialize_value(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def _snapshot(ride: Ride, fields: Iterable[str]) -> Dict[str, Any]:
    """JSON-safe copy of the given attributes (attnames, e.g. assigned_driver_id)."""
    return {name: _serialize_value(getattr(ride, name)) for name in fields}


def _restore_values(previous_state: Dict[str, Any]) -> Dict[str, Any]:
    return {
        name: Ride._meta.get_field(name).to_python(value)
        for name, value in previous_state.items()
    }


def _commit_update(ride: Ride, expected_version: int, updates: Dict[str, Any]) -> Ride:
    """
    Conditionally write updates if the stored version still matches.

    Raises:
        StaleRideError: the ride was changed (or deleted) since it was read
    """
    rows = Ride.objects.filter(id=ride.id, version=expected_version).update(
        version=F("version") + 1,
        **updates,
    )
    if rows == 0:
        current = Ride.objects.filter(id=ride.id).values_list("version", flat=True).first()
        if current is None:
            raise RideNotFoundError("Ride not found")
        logger.info(
            "Stale write rejected for ride %s (expected v%s, current v%s)",
            ride.id, expected_version, current
        )
        raise StaleRideError(
            f"Ride {ride.id} was changed by someone else "
            f"(you have v{expected_version}, current is v{current})",
            current_version=current,
        )
    ride.refresh_from_db()
    return ride


def _apply_transition(
    ride: Ride,
    expected_version: int,
    action: str,
    updates: Dict[str, Any],
    actor=None,
    related_ride: Optional[Ride] = None,
    undoable: bool = True,
    notify_extra: Optional[Dict[str, Any]] = None,
) -> Ride:
    """Write the update, log the transition, and schedule notifications."""
    from_status = ride.status
    previous_state = _snapshot(ride, updates.keys())
    ride = _commit_update(ride, expected_version, updates)

    RideTransition.objects.create(
        ride=ride,
        action=action,
        from_status=from_status,
        to_status=ride.status,
        previous_state=previous_state,
        version_before=expected_version,
        version_after=ride.version,
        related_ride=related_ride,
        performed_by=actor if getattr(actor, "is_authenticated", False) else None,
        undoable=undoable,
    )

    logger.info(
        "Ride %s %s: %s -> %s (v%s -> v%s)",
        ride.id, action, from_status, ride.status, expected_version, ride.version
    )
    _notify_after_commit(ride, action, notify_extra)
    return ride


def _notify_after_commit(ride: Ride, action: str, extra: Optional[Dict[str, Any]] = None):
    def _send():
        from realtime.notifications import notify_ride_changed
        notify_ride_changed(ride, action, extra=extra)

    transaction.on_commit(_send)


def _schedule_followups(ride: Ride):
    """Geocode a new ride if needed, then refresh ETAs for its event."""
    try:
        from rides.tasks import geocode_ride_task, refresh_event_etas_task
        if not ride.has_pickup_coordinates:
            geocode_ride_task.delay(ride.id)
        else:
            refresh_event_etas_task.delay(ride.event_id)
    except Exception:
        logger.exception("Failed to schedule follow-up tasks for ride %s", ride.id)


def _schedule_geocoding(ride: Ride):
    try:
        from rides.tasks import geocode_ride_task
        geocode_ride_task.delay(ride.id)
    except Exception:
        logger.exception("Failed to schedule geocoding for ride %s", ride.id)


def _locked_eligibility_check(event: Event, car_number: int, riders: int):
    """Re-validate the single-rider rule against the roster row, locked until commit."""
    composition = get_car_composition(event, car_number, lock=True)
    ensure_car_eligible(riders, composition)
    return composition


# ===================== Request Intake =====================

@transaction.atomic
def create_ride_request(
    event: Event,
    submitted_by=None,
    *,
    patron_name: str,
    phone: str,
    pickup: str,
    dropoff: str,
    riders: int = 1,
    request_type: str = "phone",
    willing_to_combine: bool = False,
    pickup_latitude=None,
    pickup_longitude=None,
    dropoff_latitude=None,
    dropoff_longitude=None,
) -> RideResult:
    """
    Create a pending ride for the active event.

    Raises:
        EventNotActiveError: the event is not taking requests
        BlacklistedError: the phone number or an address is blacklisted
    """
    _ensure_event_active(event)

    if is_number_blocked(phone):
        raise BlacklistedError("This phone number is blocked")

    blocked = find_blacklisted_address(pickup, dropoff)
    if blocked:
        raise BlacklistedError(f"This address is blacklisted: {blocked.address}")

    ride = Ride.objects.create(
        event=event,
        submitted_by=submitted_by if getattr(submitted_by, "is_authenticated", False) else None,
        patron_name=patron_name,
        phone=phone,
        pickup=pickup,
        dropoff=dropoff,
        riders=riders,
        request_type=request_type,
        willing_to_combine=willing_to_combine,
        pickup_latitude=pickup_latitude,
        pickup_longitude=pickup_longitude,
        dropoff_latitude=dropoff_latitude,
        dropoff_longitude=dropoff_longitude,
        status="pending",
    )
    logger.info("Ride %s requested for event %s (%s riders)", ride.id, event.id, riders)

    _notify_after_commit(ride, "created")
    transaction.on_commit(lambda: _schedule_followups(ride))

    return RideResult(
        success=True,
        ride=ride,
        message="Request submitted successfully!",
    )


# ===================== Dispatch Operations =====================

def eligible_cars_for_ride(ride: Ride) -> List[Dict[str, Any]]:
    """
    Preflight view of every car for the assign dialog: composition plus
    whether the car may take this ride. Not a guarantee; assign_car re-checks.
    """
    cars = []
    for car_number, composition in get_event_compositions(ride.event).items():
        data = composition.as_dict()
        data["eligible"] = ride.riders != 1 or composition.single_rider_eligible
        cars.append(data)
    return cars


@transaction.atomic
def assign_car(ride_id: int, car_number: int, expected_version: int, actor=None) -> RideResult:
    """
    Assign a pending ride to a car.

    Raises:
        RideNotFoundError, RideNotAvailableError, StaleRideError,
        NoCarsAvailableError, InvalidCarError, GenderEligibilityError,
        EventNotActiveError
    """
    ride = _get_ride(ride_id)
    _check_version(ride, expected_version)
    _ensure_event_active(ride.event)

    if ride.status != "pending":
        raise RideNotAvailableError(f"Cannot assign - ride is already {ride.status}")

    _validate_car(ride.event, car_number)
    composition = _locked_eligibility_check(ride.event, car_number, ride.riders)

    ride = _apply_transition(
        ride,
        expected_version,
        "assign",
        {
            "status": "active",
            "car_number": car_number,
            "assigned_driver_id": composition.driver_id,
            "assigned_at": timezone.now(),
            **ETA_CLEARED,
        },
        actor=actor,
    )

    return RideResult(
        success=True,
        ride=ride,
        message=f"Ride assigned to car {car_number}",
    )


def assign_cars(assignments: List[Dict[str, Any]], actor=None) -> List[Dict[str, Any]]:
    """
    Assign several rides in one request.

    Each item commits (or fails) on its own, so a conflict on one ride
    never rolls back the others.

    Args:
        assignments: [{"ride_id": int, "car_number": int, "expected_version": int}, ...]

    Returns:
        One outcome dict per item, in input order
    """
    results = []
    seen = set()

    for item in assignments:
        ride_id = item["ride_id"]
        if ride_id in seen:
            results.append({
                "ride_id": ride_id,
                "success": False,
                "error": "duplicate_in_batch",
                "message": "Ride appears more than once in this batch",
            })
            continue
        seen.add(ride_id)

        try:
            result = assign_car(ride_id, item["car_number"], item["expected_version"], actor)
        except DISPATCH_ERRORS as e:
            results.append({
                "ride_id": ride_id,
                "success": False,
                "error": error_code_for(e),
                "message": str(e),
                "current_version": getattr(e, "current_version", None),
            })
            continue

        results.append({
            "ride_id": ride_id,
            "success": True,
            "car_number": result.ride.car_number,
            "version": result.ride.version,
        })

    succeeded = sum(1 for r in results if r["success"])
    logger.info("Batch assignment: %s of %s succeeded", succeeded, len(results))
    return results


@transaction.atomic
def reassign_ride(ride_id: int, car_number: int, expected_version: int, actor=None) -> RideResult:
    """Move an active ride that has not been picked up to another car."""
    ride = _get_ride(ride_id)
    _check_version(ride, expected_version)
    _ensure_event_active(ride.event)

    if ride.status != "active":
        raise RideNotAvailableError(f"Cannot reassign - ride is {ride.status}")
    if ride.picked_up_at is not None:
        raise RideNotAvailableError("Cannot reassign - patron was already picked up")
    if ride.car_number == car_number:
        raise InvalidCarError(f"Ride is already assigned to car {car_number}")

    _validate_car(ride.event, car_number)
    composition = _locked_eligibility_check(ride.event, car_number, ride.riders)

    previous_car = ride.car_number
    ride = _apply_transition(
        ride,
        expected_version,
        "reassign",
        {
            "car_number": car_number,
            "assigned_driver_id": composition.driver_id,
            "assigned_at": timezone.now(),
        },
        actor=actor,
        notify_extra={"previous_car_number": previous_car},
    )

    return RideResult(
        success=True,
        ride=ride,
        message=f"Ride moved from car {previous_car} to car {car_number}",
        extra={"previous_car_number": previous_car},
    )


@transaction.atomic
def mark_picked_up(ride_id: int, expected_version: int, actor=None) -> RideResult:
    ride = _get_ride(ride_id)
    _check_version(ride, expected_version)

    if ride.status != "active":
        raise RideNotAvailableError(f"Cannot pick up - ride is {ride.status}")
    if ride.picked_up_at is not None:
        raise RideNotAvailableError("Patron was already picked up")

    ride =_apply_transition(
        ride, expected_version, "pickup", {"picked_up_at": timezone.now()}, actor=actor
    )
    return RideResult(success=True, ride=ride, message="Patron picked up")


@transaction.atomic
def complete_ride(ride_id: int, expected_version: int, actor=None) -> RideResult:
    ride = _get_ride(ride_id)
    _check_version(ride, expected_version)

    if ride.status != "active":
        raise RideNotAvailableError(f"Cannot complete - ride is {ride.status}")

    ride =_apply_transition(
        ride,
        expected_version,
        "complete",
        {"status": "completed", "completed_at": timezone.now()},
        actor=actor,
    )
    return RideResult(success=True, ride=ride, message="Ride completed successfully")


@transaction.atomic
def cancel_ride(ride_id: int, expected_version: int, actor=None,
                reason: str = "No reason provided") -> RideResult:
    ride = _get_ride(ride_id)
    _check_version(ride, expected_version)

    if ride.status not in ("pending", "active"):
        raise RideNotAvailableError(f"Cannot cancel - ride is already {ride.status}")

    ride =_apply_transition(
        ride,
        expected_version,
        "cancel",
        {
            "status": "cancelled",
            "completed_at": timezone.now(),
            "cancellation_reason": reason or "No reason provided",
            **ETA_CLEARED,
        },
        actor=actor,
    )
    return RideResult(success=True, ride=ride, message="Ride cancelled successfully")


@transaction.atomic
def terminate_ride(ride_id: int, expected_version: int, actor=None,
                   reason: str = "No reason provided") -> RideResult:
    """End an active ride early (patron no-show, unsafe situation)."""
    ride = _get_ride(ride_id)
    _check_version(ride, expected_version)

    if ride.status != "active":
        raise RideNotAvailableError(f"Cannot terminate - ride is {ride.status}")

    ride =_apply_transition(
        ride,
        expected_version,
        "terminate",
        {
            "status": "terminated",
            "completed_at": timezone.now(),
            "termination_reason": reason or "No reason provided",
        },
        actor=actor,
    )
    return RideResult(success=True, ride=ride, message="Ride terminated")


@transaction.atomic
def update_ride_details(ride_id: int, expected_version: int, actor=None, **fields) -> RideResult:
    """
    Edit patron/location details of a pending or active ride.

    Editing an active ride down to a single rider re-applies the safety rule
    to its car. A new address without new coordinates drops the old
    coordinates so the ride is geocoded again.
    """
    ride = _get_ride(ride_id)
    _check_version(ride, expected_version)

    if ride.status not in ("pending", "active"):
        raise RideNotAvailableError(f"Cannot edit - ride is {ride.status}")

    updates = {
        name: value for name, value in fields.items()
        if name in EDITABLE_FIELDS and getattr(ride, name) != value
    }
    if not updates:
        return RideResult(success=True, ride=ride, message="Nothing to update")

    for place in ("pickup", "dropoff"):
        coordinates = (f"{place}_latitude", f"{place}_longitude")
        if place in updates and not any(name in fields for name in coordinates):
            for name in coordinates:
                if getattr(ride, name) is not None:
                    updates[name] = None

    if ride.status == "active" and "riders" in updates:
        _locked_eligibility_check(ride.event, ride.car_number, updates["riders"])

    if "pickup_latitude" in updates or "pickup_longitude" in updates:
        updates.update(ETA_CLEARED)

    ride = _apply_transition(ride, expected_version, "edit", updates, actor=actor)

    needs_geocoding = (
        ("pickup" in updates and not ride.has_pickup_coordinates)
        or ("dropoff" in updates and not ride.has_dropoff_coordinates)
    )
    if needs_geocoding:
        transaction.on_commit(lambda: _schedule_geocoding(ride))

    return RideResult(success=True, ride=ride, message="Ride updated")


@transaction.atomic
def split_ride(ride_id: int, riders_to_move: int, expected_version: int, actor=None) -> RideResult:
    """
    Split part of a group off into a new pending ride.

    The new ride keeps the original request time so it does not lose its
    place in the queue.
    """
    ride = _get_ride(ride_id)
    _check_version(ride, expected_version)
    _ensure_event_active(ride.event)

    if ride.status not in ("pending", "active"):
        raise RideNotAvailableError(f"Cannot split - ride is {ride.status}")
    if ride.status == "active" and ride.picked_up_at is not None:
        raise RideNotAvailableError("Cannot split - patron was already picked up")
    if ride.riders < 2:
        raise InvalidSplitError("Only rides with two or more riders can be split")
    if riders_to_move < 1 or riders_to_move >= ride.riders:
        raise InvalidSplitError(
            f"Riders to move must be between 1 and {ride.riders - 1}"
        )

    remaining = ride.riders - riders_to_move
    if ride.status == "active":
        _locked_eligibility_check(ride.event, ride.car_number, remaining)

    child = Ride.objects.create(
        event=ride.event,
        parent_ride=ride,
        submitted_by=actor if getattr(actor, "is_authenticated", False) else None,
        patron_name=ride.patron_name,
        phone=ride.phone,
        pickup=ride.pickup,
        dropoff=ride.dropoff,
        pickup_latitude=ride.pickup_latitude,
        pickup_longitude=ride.pickup_longitude,
        dropoff_latitude=ride.dropoff_latitude,
        dropoff_longitude=ride.dropoff_longitude,
        riders=riders_to_move,
        request_type=ride.request_type,
        willing_to_combine=ride.willing_to_combine,
        requested_at=ride.requested_at,
        status="pending",
    )

    ride = _apply_transition(
        ride,
        expected_version,
        "split",
        {"riders": remaining},
        actor=actor,
        related_ride=child,
        notify_extra={"split_ride_id": child.id},
    )
    _notify_after_commit(child, "created")

    return RideResult(
        success=True,
        ride=ride,
        message=f"Moved {riders_to_move} rider(s) to ride #{child.id}",
        extra={"split_ride": child},
    )


# ===================== Queries =====================

def get_ride_queues(event: Event) -> Dict[str, List[Ride]]:
    """Pending (oldest first), active (newest first), finished (latest first)."""
    rides = Ride.objects.filter(event=event).select_related("assigned_driver")
    return {
        "pending": list(rides.filter(status="pending").order_by("requested_at", "id")),
        "active": list(rides.filter(status="active").order_by("-requested_at", "-id")),
        "completed": list(
            rides.filter(status__in=Ride.FINISHED_STATUSES).order_by("-completed_at", "-id")
        ),
    }

"""
Undo of the most recent dispatcher action on a ride.

Every transition stores the values it overwrote. Undo writes them back
through the same versioned UPDATE as any other action, so an undo can
itself lose a race and is recorded as a transition of its own.
"""

import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from rides.models import Ride, RideTransition
from services.eligibility import get_car_composition, ensure_car_eligible
from .exceptions import UndoNotAllowedError
from .ride_lifecycle import (
    RideResult,
    _get_ride,
    _check_version,
    _validate_car,
    _restore_values,
    _apply_transition,
)

logger = logging.getLogger(__name__)


def get_undoable_transition(ride: Ride):
    """Latest transition that may still be undone, or None."""
    transition = (
        RideTransition.objects
        .filter(ride=ride, undoable=True, undone_at__isnull=True)
        .order_by("-created_at", "-id")
        .first()
    )
    if transition is None or transition.version_after != ride.version:
        return None

    window = timedelta(seconds=settings.RIDE_UNDO_WINDOW_SECONDS)
    if timezone.now() - transition.created_at > window:
        return None
    return transition


@transaction.atomic
def undo_last_transition(ride_id: int, expected_version: int, actor=None) -> RideResult:
    """
    Revert the ride's most recent action.

    Only the latest action can be undone, only within the undo window, and
    only while nothing else has touched the ride since.

    Raises:
        RideNotFoundError, StaleRideError, UndoNotAllowedError, InvalidCarError,
        GenderEligibilityError (restoring a single rider into a car that no
        longer qualifies)
    """
    ride = _get_ride(ride_id)
    _check_version(ride, expected_version)

    transition = (
        RideTransition.objects
        .select_for_update()
        .filter(ride=ride, undoable=True, undone_at__isnull=True)
        .order_by("-created_at", "-id")
        .first()
    )
    if transition is None:
        raise UndoNotAllowedError("There is nothing to undo for this ride")
    if transition.version_after != ride.version:
        raise UndoNotAllowedError("The ride has changed since that action")

    window = timedelta(seconds=settings.RIDE_UNDO_WINDOW_SECONDS)
    if timezone.now() - transition.created_at > window:
        raise UndoNotAllowedError(
            f"Actions can only be undone within {settings.RIDE_UNDO_WINDOW_SECONDS // 60} minutes"
        )

    restored = _restore_values(transition.previous_state)

    if transition.action == "split":
        child = transition.related_ride
        if child is not None:
            if child.status != "pending" or child.version != 1:
                raise UndoNotAllowedError(
                    f"Ride #{child.id} split from this ride has already been dispatched"
                )
            child.delete()

    status = restored.get("status", ride.status)
    riders = restored.get("riders", ride.riders)
    car_number = restored.get("car_number", ride.car_number)
    if status == "active" and car_number:
        _validate_car(ride.event, car_number)
        if riders == 1:
            composition = get_car_composition(ride.event, car_number, lock=True)
            ensure_car_eligible(riders, composition)

    previous_car = ride.car_number
    ride = _apply_transition(
        ride,
        expected_version,
        "undo",
        restored,
        actor=actor,
        undoable=False,
        notify_extra={"undone_action": transition.action, "previous_car_number": previous_car},
    )

    # the split child is gone, so save() would trip over related_ride
    RideTransition.objects.filter(id=transition.id).update(undone_at=timezone.now())

    logger.info("Undid %s on ride %s", transition.action, ride.id)
    return RideResult(
        success=True,
        ride=ride,
        message=f"Undid {transition.get_action_display().lower()}",
        extra={"undone_action": transition.action},
    )

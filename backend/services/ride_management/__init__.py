"""
Ride management service - Core ride lifecycle operations.

This module handles:
    - Screening and creating ride requests
    - Assigning, reassigning and splitting rides
    - Pickup, completion, cancellation and termination
    - Undoing the latest dispatcher action
"""

from .exceptions import (
    RideNotFoundError,
    RideNotAvailableError,
    StaleRideError,
    GenderEligibilityError,
    NoCarsAvailableError,
    InvalidCarError,
    EventNotActiveError,
    BlacklistedError,
    InvalidSplitError,
    UndoNotAllowedError,
    DISPATCH_ERRORS,
    error_code_for,
    http_status_for,
)

from .ride_lifecycle import (
    RideResult,
    create_ride_request,
    eligible_cars_for_ride,
    assign_car,
    assign_cars,
    reassign_ride,
    mark_picked_up,
    complete_ride,
    cancel_ride,
    terminate_ride,
    update_ride_details,
    split_ride,
    get_ride_queues,
)

from .undo import undo_last_transition, get_undoable_transition
from .screening import is_number_blocked, find_blacklisted_address, approve_address

__all__ = [
    # Lifecycle operations
    "RideResult",
    "create_ride_request",
    "eligible_cars_for_ride",
    "assign_car",
    "assign_cars",
    "reassign_ride",
    "mark_picked_up",
    "complete_ride",
    "cancel_ride",
    "terminate_ride",
    "update_ride_details",
    "split_ride",
    "get_ride_queues",
    "undo_last_transition",
    "get_undoable_transition",
    # Screening
    "is_number_blocked",
    "find_blacklisted_address",
    "approve_address",
    # Exceptions
    "RideNotFoundError",
    "RideNotAvailableError",
    "StaleRideError",
    "GenderEligibilityError",
    "NoCarsAvailableError",
    "InvalidCarError",
    "EventNotActiveError",
    "BlacklistedError",
    "InvalidSplitError",
    "UndoNotAllowedError",
    "DISPATCH_ERRORS",
    "error_code_for",
    "http_status_for",
]

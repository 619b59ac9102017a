"""
Services package - Business logic layer.

This package contains all business logic services that operate on Django models
but are decoupled from the HTTP/WebSocket layer.

Modules:
    - eligibility: Car gender composition and the single-rider rule
    - ride_management: Core ride lifecycle operations
    - maps: Google Maps web-service client
    - eta: Pickup time estimation for pending rides
    - advisories: Weather and traffic advisories
"""

# Expose commonly used functions at package level
from .eligibility import (
    get_car_composition,
    get_event_compositions,
    ensure_car_eligible,
)
from .ride_management import (
    create_ride_request,
    assign_car,
    assign_cars,
    reassign_ride,
    mark_picked_up,
    complete_ride,
    cancel_ride,
    terminate_ride,
    update_ride_details,
    split_ride,
    undo_last_transition,
    RideNotFoundError,
    RideNotAvailableError,
    StaleRideError,
    GenderEligibilityError,
)

__all__ = [
    # Eligibility
    "get_car_composition",
    "get_event_compositions",
    "ensure_car_eligible",
    # Ride management
    "create_ride_request",
    "assign_car",
    "assign_cars",
    "reassign_ride",
    "mark_picked_up",
    "complete_ride",
    "cancel_ride",
    "terminate_ride",
    "update_ride_details",
    "split_ride",
    "undo_last_transition",
    # Exceptions
    "RideNotFoundError",
    "RideNotAvailableError",
    "StaleRideError",
    "GenderEligibilityError",
]

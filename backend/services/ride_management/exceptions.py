"""Custom exceptions for ride management."""

from services.eligibility.exceptions import GenderEligibilityError


class RideNotFoundError(Exception):
    """Raised when a ride cannot be found."""
    pass


class RideNotAvailableError(Exception):
    """Raised when a ride is not in an available state for the operation."""
    pass


class StaleRideError(Exception):
    """Raised when the ride changed since the caller last read it."""

    def __init__(self, message: str, current_version=None):
        super().__init__(message)
        self.current_version = current_version


class NoCarsAvailableError(Exception):
    """Raised when the event has no cars on the road."""
    pass


class InvalidCarError(Exception):
    """Raised when a car number is outside the event's car range."""
    pass


class EventNotActiveError(Exception):
    """Raised when rides are requested or dispatched outside an active event."""
    pass


class BlacklistedError(Exception):
    """Raised when the phone number or an address of a request is blacklisted."""
    pass


class InvalidSplitError(Exception):
    """Raised when a ride cannot be split the requested way."""
    pass


class UndoNotAllowedError(Exception):
    """Raised when the last transition of a ride can no longer be undone."""
    pass


# (error code, HTTP status) per exception, used by the API layer and batch results
ERROR_CODES = {
    RideNotFoundError: ("ride_not_found", 404),
    RideNotAvailableError: ("ride_not_available", 400),
    StaleRideError: ("stale_version", 409),
    GenderEligibilityError: ("gender_ineligible", 400),
    NoCarsAvailableError: ("no_cars_available", 400),
    InvalidCarError: ("invalid_car", 400),
    EventNotActiveError: ("event_not_active", 400),
    BlacklistedError: ("blacklisted", 403),
    InvalidSplitError: ("invalid_split", 400),
    UndoNotAllowedError: ("undo_not_allowed", 400),
}

DISPATCH_ERRORS = tuple(ERROR_CODES)


def error_code_for(exc: Exception) -> str:
    return ERROR_CODES.get(type(exc), ("error", 400))[0]


def http_status_for(exc: Exception) -> int:
    return ERROR_CODES.get(type(exc), ("error", 400))[1]

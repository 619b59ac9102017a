"""Exceptions raised by the eligibility service."""


class GenderEligibilityError(Exception):
    """Raised when a single rider would be placed in a car without a mixed-gender crew."""
    pass

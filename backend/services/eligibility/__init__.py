"""
Car eligibility service.

This module handles:
    - Gender normalization of member records
    - Gender composition of each car's roster
    - The single-rider safety rule (mixed-gender crew required)
"""

from .gender import normalize_gender, gender_label, is_male, is_female
from .composition import (
    CarComposition,
    composition_for_members,
    get_car_composition,
    get_event_compositions,
    ensure_car_eligible,
)

__all__ = [
    "normalize_gender",
    "gender_label",
    "is_male",
    "is_female",
    "CarComposition",
    "composition_for_members",
    "get_car_composition",
    "get_event_compositions",
    "ensure_car_eligible",
]

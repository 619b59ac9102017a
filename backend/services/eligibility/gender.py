"""
Gender normalization for roster composition.

Members type their gender freely; the safety rule only needs to know who
counts as male and who counts as female.
"""

from typing import Optional

_MALE = {"male", "m", "man"}
_FEMALE = {"female", "f", "woman"}


def normalize_gender(value: Optional[str]) -> Optional[str]:
    """Return 'male', 'female', or None for anything unrecognised."""
    if not value:
        return None
    normalized = value.strip().lower()
    if normalized in _MALE:
        return "male"
    if normalized in _FEMALE:
        return "female"
    return None


def is_male(member) -> bool:
    return normalize_gender(getattr(member, "gender", None)) == "male"


def is_female(member) -> bool:
    return normalize_gender(getattr(member, "gender", None)) == "female"


def gender_label(value: Optional[str]) -> str:
    normalized = normalize_gender(value)
    if normalized == "male":
        return "Male"
    if normalized == "female":
        return "Female"
    return "Unknown"

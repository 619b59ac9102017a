"""
Gender composition of car rosters and the single-rider safety rule.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Dict, Iterable, Optional

from events.models import Event, CarAssignment
from .exceptions import GenderEligibilityError
from .gender import normalize_gender

logger = logging.getLogger(__name__)


@dataclass
class CarComposition:
    """Head count by gender for one car."""
    car_number: int
    male: int = 0
    female: int = 0
    unknown: int = 0
    driver_id: Optional[int] = None

    @property
    def total(self) -> int:
        return self.male + self.female + self.unknown

    @property
    def single_rider_eligible(self) -> bool:
        return self.male >= 1 and self.female >= 1

    def as_dict(self) -> Dict:
        data = asdict(self)
        data["total"] = self.total
        data["single_rider_eligible"] = self.single_rider_eligible
        return data


def composition_for_members(car_number: int, members: Iterable, driver_id: Optional[int] = None) -> CarComposition:
    composition = CarComposition(car_number=car_number, driver_id=driver_id)
    for member in members:
        gender = normalize_gender(getattr(member, "gender", None))
        if gender == "male":
            composition.male += 1
        elif gender == "female":
            composition.female += 1
        else:
            composition.unknown += 1
    return composition


def get_car_composition(event: Event, car_number: int, lock: bool = False) -> CarComposition:
    """
    Composition of one car's current roster.

    With lock=True the roster row is locked (SELECT ... FOR UPDATE) so the
    composition cannot change until the surrounding transaction commits.
    Must be called inside transaction.atomic() when locking.
    """
    qs = CarAssignment.objects.filter(event=event, car_number=car_number)
    if lock:
        qs = qs.select_for_update()
    assignment = qs.first()
    if assignment is None:
        return CarComposition(car_number=car_number)

    return composition_for_members(
        car_number,
        assignment.members.all(),
        driver_id=assignment.driver_id,
    )


def get_event_compositions(event: Event) -> Dict[int, CarComposition]:
    """Compositions of every car 1..available_cars, empty cars included."""
    assignments = {
        a.car_number: a
        for a in CarAssignment.objects.filter(event=event).prefetch_related("members")
    }

    compositions = {}
    for car_number in range(1, event.available_cars + 1):
        assignment = assignments.get(car_number)
        if assignment is None:
            compositions[car_number] = CarComposition(car_number=car_number)
        else:
            compositions[car_number] = composition_for_members(
                car_number, assignment.members.all(), driver_id=assignment.driver_id
            )
    return compositions


def ensure_car_eligible(riders: int, composition: CarComposition):
    """
    Enforce the single-rider rule.

    Raises:
        GenderEligibilityError: a lone rider and the car lacks a male or a female member
    """
    if riders != 1:
        return
    if not composition.single_rider_eligible:
        logger.info(
            "Car %s rejected for single rider (male=%s female=%s)",
            composition.car_number, composition.male, composition.female
        )
        raise GenderEligibilityError(
            f"Car {composition.car_number} needs at least one male and one female "
            f"member to take a single rider"
        )

from types import SimpleNamespace

from django.test import TestCase

from services.eligibility import (
	normalize_gender,
	gender_label,
	is_male,
	is_female,
	composition_for_members,
	get_car_composition,
	get_event_compositions,
	ensure_car_eligible,
	CarComposition,
)
from services.ride_management import GenderEligibilityError
from .helpers import make_member, make_event, make_roster


class GenderNormalizationTests(TestCase):
	def test_recognised_values(self):
		for value in ('male', 'M', ' Man ', 'MALE'):
			self.assertEqual(normalize_gender(value), 'male')
		for value in ('female', 'f', 'Woman', ' FEMALE'):
			self.assertEqual(normalize_gender(value), 'female')

	def test_unknown_values(self):
		for value in (None, '', '   ', 'nonbinary', 'prefer not to say'):
			self.assertIsNone(normalize_gender(value))

	def test_labels(self):
		self.assertEqual(gender_label('m'), 'Male')
		self.assertEqual(gender_label('Woman'), 'Female')
		self.assertEqual(gender_label('other'), 'Unknown')

	def test_member_predicates(self):
		self.assertTrue(is_male(SimpleNamespace(gender='M')))
		self.assertTrue(is_female(SimpleNamespace(gender='f')))
		self.assertFalse(is_male(SimpleNamespace(gender=None)))


class CompositionTests(TestCase):
	def setUp(self):
		self.event = make_event(available_cars=3)
		self.alex = make_member('alex', 'male')
		self.beth = make_member('beth', 'Female')
		self.casey = make_member('casey', 'nonbinary')
		self.dan = make_member('dan', 'm')

	def test_composition_counts(self):
		composition = composition_for_members(1, [self.alex, self.beth, self.casey])
		self.assertEqual((composition.male, composition.female, composition.unknown), (1, 1, 1))
		self.assertEqual(composition.total, 3)
		self.assertTrue(composition.single_rider_eligible)

	def test_single_gender_car_is_not_eligible(self):
		composition = composition_for_members(2, [self.alex, self.dan])
		self.assertFalse(composition.single_rider_eligible)

	def test_unknown_gender_does_not_count(self):
		composition = composition_for_members(3, [self.alex, self.casey])
		self.assertFalse(composition.single_rider_eligible)

	def test_car_composition_from_roster(self):
		make_roster(self.event, 1, [self.alex, self.beth], driver=self.alex)
		composition = get_car_composition(self.event, 1)
		self.assertEqual(composition.driver_id, self.alex.id)
		self.assertTrue(composition.single_rider_eligible)

	def test_car_without_roster_is_empty(self):
		composition = get_car_composition(self.event, 2, lock=True)
		self.assertEqual(composition.total, 0)
		self.assertFalse(composition.single_rider_eligible)

	def test_event_compositions_include_empty_cars(self):
		make_roster(self.event, 2, [self.dan])
		compositions = get_event_compositions(self.event)
		self.assertEqual(sorted(compositions), [1, 2, 3])
		self.assertEqual(compositions[1].total, 0)
		self.assertEqual(compositions[2].male, 1)

	def test_as_dict_includes_computed_fields(self):
		data = CarComposition(car_number=4, male=1, female=1).as_dict()
		self.assertEqual(data['total'], 2)
		self.assertTrue(data['single_rider_eligible'])


class EnsureEligibleTests(TestCase):
	def test_single_rider_needs_mixed_crew(self):
		with self.assertRaises(GenderEligibilityError):
			ensure_car_eligible(1, CarComposition(car_number=1, male=2))

	def test_single_rider_mixed_crew_passes(self):
		ensure_car_eligible(1, CarComposition(car_number=1, male=1, female=1))

	def test_groups_are_not_restricted(self):
		ensure_car_eligible(2, CarComposition(car_number=1, female=3))
		ensure_car_eligible(5, CarComposition(car_number=1))

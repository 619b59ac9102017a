from datetime import timedelta
from unittest.mock import patch

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIRequestFactory, force_authenticate

from events import services
from events.models import Event, CarAssignment
from events.views import (
	EventListView,
	ActivateEventView,
	EndEventView,
	AvailableCarsView,
	CarRosterView,
	CarCompositionsView,
	EventAdvisoriesView,
)
from services.tests.helpers import make_member, make_event, make_roster, make_ride


class EventLifecycleTests(TestCase):
	def setUp(self):
		self.director = make_member('director', role='director')
		self.event = make_event(status='pending')

	def test_activate_then_end(self):
		with patch('realtime.notifications.notify_event_group') as mock_notify, \
				self.captureOnCommitCallbacks(execute=True) as callbacks:
			event = services.activate_event(self.event, self.director)

		self.assertEqual(event.status, 'active')
		self.assertEqual(event.activated_by, self.director)
		self.assertIsNotNone(event.activated_at)
		self.assertEqual(len(callbacks), 1)
		mock_notify.assert_called_once_with(event.id, 'event_status_changed', {
			'event_id': event.id,
			'status': 'active',
		})
		self.assertEqual(services.get_active_event(), event)

		event = services.end_event(event)
		self.assertEqual(event.status, 'completed')
		self.assertIsNotNone(event.ended_at)
		self.assertIsNone(services.get_active_event())

	def test_only_one_active_event(self):
		make_event(name='Already Running')
		with self.assertRaises(services.EventStateError):
			services.activate_event(self.event, self.director)

	def test_pending_event_cannot_end(self):
		with self.assertRaises(services.EventStateError):
			services.end_event(self.event)

	def test_missing_event(self):
		with self.assertRaises(services.EventNotFoundError):
			services.get_event(9999)


class RosterTests(TestCase):
	def setUp(self):
		self.event = make_event(available_cars=2)
		self.alex = make_member('alex', 'male')
		self.beth = make_member('beth', 'female')
		self.casey = make_member('casey', 'female')

	def test_member_moves_between_cars(self):
		services.set_car_roster(self.event, 1, [self.alex.id, self.beth.id], driver_id=self.beth.id)
		services.set_car_roster(self.event, 2, [self.beth.id, self.casey.id])

		car_one = CarAssignment.objects.get(event=self.event, car_number=1)
		car_two = CarAssignment.objects.get(event=self.event, car_number=2)
		self.assertEqual(list(car_one.members.all()), [self.alex])
		self.assertIsNone(car_one.driver)
		self.assertEqual(set(car_two.members.all()), {self.beth, self.casey})

	def test_driver_must_be_member(self):
		with self.assertRaises(services.RosterError):
			services.set_car_roster(self.event, 1, [self.alex.id], driver_id=self.beth.id)

	def test_unknown_car_or_member(self):
		with self.assertRaises(services.RosterError):
			services.set_car_roster(self.event, 3, [self.alex.id])
		with self.assertRaises(services.RosterError):
			services.set_car_roster(self.event, 1, [self.alex.id, 9999])

	def test_reducing_car_count_drops_rosters(self):
		make_roster(self.event, 1, [self.alex])
		make_roster(self.event, 2, [self.beth])

		event = services.set_available_cars(self.event, 1)

		self.assertEqual(event.available_cars, 1)
		self.assertEqual(
			list(CarAssignment.objects.filter(event=event).values_list('car_number', flat=True)),
			[1]
		)

	def test_negative_car_count(self):
		with self.assertRaises(services.RosterError):
			services.set_available_cars(self.event, -1)


class EventReportTests(TestCase):
	def test_counts_and_averages(self):
		event = make_event()
		now = timezone.now()
		make_ride(
			event, riders=3, status='completed',
			requested_at=now - timedelta(minutes=40),
			assigned_at=now - timedelta(minutes=30),
			picked_up_at=now - timedelta(minutes=20),
			completed_at=now - timedelta(minutes=10),
		)
		make_ride(event, riders=2, status='cancelled')
		make_ride(event, riders=1)

		report = services.get_event_report(event)

		self.assertEqual(report['total_rides'], 3)
		self.assertEqual(report['counts']['completed'], 1)
		self.assertEqual(report['counts']['cancelled'], 1)
		self.assertEqual(report['counts']['pending'], 1)
		self.assertEqual(report['riders_served'], 3)
		self.assertEqual(report['average_wait_minutes'], 10)
		self.assertEqual(report['average_ride_minutes'], 10)


class EventApiTests(TestCase):
	def setUp(self):
		cache.clear()
		self.factory = APIRequestFactory()
		self.director = make_member('director', role='director')
		self.deputy = make_member('deputy', role='deputy')
		self.member = make_member('member')
		self.event = make_event(status='pending', available_cars=2)

	def _call(self, view, method, user, data=None, **kwargs):
		request = getattr(self.factory, method)('/', data, format='json')
		force_authenticate(request, user=user)
		return view.as_view()(request, **kwargs)

	def test_only_directors_create_events(self):
		data = {'name': 'Saturday', 'event_date': timezone.now().isoformat(), 'available_cars': 4}
		response = self._call(EventListView, 'post', self.deputy, data)
		self.assertEqual(response.status_code, 403)

		response = self._call(EventListView, 'post', self.director, data)
		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['status'], 'pending')
		self.assertEqual(response.data['created_by'], 'director')

	def test_activate_conflict(self):
		make_event(name='Running')
		response = self._call(ActivateEventView, 'post', self.director, event_id=self.event.id)
		self.assertEqual(response.status_code, 409)

	def test_end_returns_report(self):
		self._call(ActivateEventView, 'post', self.director, event_id=self.event.id)
		response = self._call(EndEventView, 'post', self.director, event_id=self.event.id)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['event']['status'], 'completed')
		self.assertEqual(response.data['report']['total_rides'], 0)

	def test_roster_and_compositions(self):
		alex = make_member('alex', 'male')
		beth = make_member('beth', 'female')
		response = self._call(CarRosterView, 'put', self.deputy,
		                      {'member_ids': [alex.id, beth.id], 'driver_id': alex.id},
		                      event_id=self.event.id, car_number=1)
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['driver']['id'], alex.id)

		response = self._call(CarCompositionsView, 'get', self.deputy, event_id=self.event.id)
		cars = {car['car_number']: car for car in response.data['cars']}
		self.assertEqual(len(cars), 2)
		self.assertTrue(cars[1]['single_rider_eligible'])
		self.assertFalse(cars[2]['single_rider_eligible'])

	def test_roster_for_missing_car(self):
		response = self._call(CarRosterView, 'put', self.deputy, {'member_ids': []},
		                      event_id=self.event.id, car_number=5)
		self.assertEqual(response.status_code, 400)

	def test_members_cannot_change_car_count(self):
		response = self._call(AvailableCarsView, 'put', self.member, {'available_cars': 5},
		                      event_id=self.event.id)
		self.assertEqual(response.status_code, 403)

		response = self._call(AvailableCarsView, 'put', self.deputy, {'available_cars': 5},
		                      event_id=self.event.id)
		self.assertEqual(response.data, {'available_cars': 5})

	def test_advisories_without_coordinates(self):
		response = self._call(EventAdvisoriesView, 'get', self.member, event_id=self.event.id)
		self.assertEqual(response.status_code, 200)
		self.assertIsNone(response.data['weather'])

	def test_missing_event(self):
		response = self._call(EndEventView, 'post', self.director, event_id=9999)
		self.assertEqual(response.status_code, 404)
		self.assertFalse(Event.objects.filter(id=9999).exists())

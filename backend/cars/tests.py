from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIRequestFactory, force_authenticate

from cars import services
from cars.models import CarLocation
from cars.views import CarLocationView, EventCarLocationsView
from services.tests.helpers import make_member, make_event


@patch('realtime.notifications.notify_event_group')
class CarLocationServiceTests(TestCase):
	def setUp(self):
		services._last_broadcast_times.clear()
		self.event = make_event(available_cars=2)

	def test_one_row_per_car(self, mock_notify):
		services.update_car_location(self.event, 1, Decimal('30.610000'), Decimal('-96.310000'))
		services.update_car_location(self.event, 1, Decimal('30.620000'), Decimal('-96.320000'), force=True)

		location = CarLocation.objects.get(event=self.event, car_number=1)
		self.assertEqual(location.latitude, Decimal('30.620000'))
		self.assertEqual(CarLocation.objects.count(), 1)
		self.assertEqual(mock_notify.call_count, 2)
		self.assertEqual(mock_notify.call_args[0][1], 'car_location_updated')

	def test_broadcasts_are_throttled(self, mock_notify):
		services.update_car_location(self.event, 2, 30.61, -96.31)
		services.update_car_location(self.event, 2, 30.62, -96.32)

		self.assertEqual(mock_notify.call_count, 1)
		self.assertEqual(CarLocation.objects.get(car_number=2).latitude, Decimal('30.620000'))

	def test_unknown_car(self, mock_notify):
		with self.assertRaises(services.InvalidCarNumberError):
			services.update_car_location(self.event, 3, 30.61, -96.31)
		mock_notify.assert_not_called()

	def test_fresh_locations(self, mock_notify):
		CarLocation.objects.create(event=self.event, car_number=1, latitude=30.6, longitude=-96.3)
		CarLocation.objects.create(
			event=self.event, car_number=2, latitude=30.6, longitude=-96.3,
			updated_at=timezone.now() - timedelta(minutes=30),
		)

		self.assertEqual(list(services.get_fresh_car_locations(self.event)), [1])

		self.event.available_cars = 0
		self.assertEqual(services.get_fresh_car_locations(self.event), {})


class CarLocationApiTests(TestCase):
	def setUp(self):
		services._last_broadcast_times.clear()
		self.factory = APIRequestFactory()
		self.event = make_event(available_cars=2)
		self.crew = make_member('crew', 'female')

	def _post(self, event_id, car_number, data):
		request = self.factory.post('/', data, format='json')
		force_authenticate(request, user=self.crew)
		return CarLocationView.as_view()(request, event_id=event_id, car_number=car_number)

	def _get(self, view, **kwargs):
		request = self.factory.get('/')
		force_authenticate(request, user=self.crew)
		return view.as_view()(request, **kwargs)

	@patch('realtime.notifications.notify_event_group')
	def test_report_and_read_location(self, mock_notify):
		response = self._post(self.event.id, 1, {'latitude': '30.612345', 'longitude': '-96.341234'})
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['message'], 'Location updated')

		response = self._get(CarLocationView, event_id=self.event.id, car_number=1)
		self.assertEqual(response.data['latitude'], '30.612345')

		response = self._get(EventCarLocationsView, event_id=self.event.id)
		self.assertEqual(response.data['count'], 1)
		self.assertTrue(response.data['locations'][0]['is_fresh'])

	def test_invalid_coordinates(self):
		response = self._post(self.event.id, 1, {'latitude': '95', 'longitude': '-96.3'})
		self.assertEqual(response.status_code, 400)

	def test_inactive_event(self):
		event = make_event(name='Later', status='pending', available_cars=2)
		response = self._post(event.id, 1, {'latitude': '30.6', 'longitude': '-96.3'})
		self.assertEqual(response.status_code, 400)

	def test_unknown_car(self):
		response = self._post(self.event.id, 7, {'latitude': '30.6', 'longitude': '-96.3'})
		self.assertEqual(response.status_code, 400)

	def test_no_location_yet(self):
		response = self._get(CarLocationView, event_id=self.event.id, car_number=2)
		self.assertEqual(response.status_code, 404)

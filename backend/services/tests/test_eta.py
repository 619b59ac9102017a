from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.core.cache import cache
from django.test import TestCase, override_settings
from django.utils import timezone

from cars.models import CarLocation
from rides.models import Ride
from services.eta import refresh_event_etas, fallback_seconds
from services.maps import MapsError
from .helpers import make_event, make_ride


class EtaTestCase(TestCase):
	def setUp(self):
		cache.clear()
		self.event = make_event(available_cars=2)
		CarLocation.objects.create(event=self.event, car_number=1, latitude=Decimal('30.600000'), longitude=Decimal('-96.300000'))
		CarLocation.objects.create(event=self.event, car_number=2, latitude=Decimal('30.700000'), longitude=Decimal('-96.300000'))
		self.ride = make_ride(
			self.event,
			riders=2,
			pickup_latitude=Decimal('30.610000'),
			pickup_longitude=Decimal('-96.300000'),
		)


class FallbackEtaTests(EtaTestCase):
	def test_straight_line_estimate_without_maps_key(self):
		result = refresh_event_etas(self.event)

		self.assertEqual(result.updated, 1)
		self.assertTrue(result.used_fallback)
		self.ride.refresh_from_db()
		# ~1.1 km at 40 km/h
		self.assertEqual(self.ride.estimated_pickup_minutes, 2)
		self.assertEqual(self.ride.fastest_car_number, 1)
		self.assertIsNotNone(self.ride.eta_calculated_at)

	def test_eta_write_does_not_bump_version(self):
		refresh_event_etas(self.event)
		self.ride.refresh_from_db()
		self.assertEqual(self.ride.version, 1)

	def test_fallback_seconds(self):
		seconds = fallback_seconds((30.6, -96.3), (30.6, -96.3))
		self.assertEqual(seconds, 0)

	def test_refresh_is_rate_limited_per_event(self):
		refresh_event_etas(self.event)
		result = refresh_event_etas(self.event)
		self.assertTrue(result.skipped)
		self.assertEqual(result.reason, 'rate_limited')

		forced = refresh_event_etas(self.event, force=True)
		self.assertFalse(forced.skipped)

	def test_stale_car_locations_are_ignored(self):
		CarLocation.objects.filter(event=self.event).update(updated_at=timezone.now() - timedelta(minutes=30))
		result = refresh_event_etas(self.event)
		self.assertTrue(result.skipped)
		self.assertEqual(result.reason, 'no_car_locations')

	def test_rides_without_coordinates_or_not_pending_are_skipped(self):
		Ride.objects.filter(id=self.ride.id).update(status='active', car_number=1)
		make_ride(self.event, riders=1)
		result = refresh_event_etas(self.event)
		self.assertEqual(result.reason, 'no_pending_rides')

	def test_inactive_event_is_skipped(self):
		self.event.status = 'completed'
		self.event.save()
		result = refresh_event_etas(self.event)
		self.assertEqual(result.reason, 'event_not_active')

	@patch('realtime.notifications.notify_event_group')
	def test_dispatch_board_is_notified(self, mock_notify):
		refresh_event_etas(self.event)
		mock_notify.assert_called_once()
		event_id, event_type, payload = mock_notify.call_args[0]
		self.assertEqual((event_id, event_type), (self.event.id, 'etas_updated'))
		self.assertEqual(payload['estimates'][0]['ride_id'], self.ride.id)


@patch('services.eta.estimator.get_maps_client')
class MapsEtaTests(EtaTestCase):
	def test_uses_distance_matrix(self, mock_get_client):
		client = mock_get_client.return_value
		client.is_configured = True
		client.distance_matrix.return_value = [[900], [300]]

		result = refresh_event_etas(self.event)

		self.assertFalse(result.used_fallback)
		self.ride.refresh_from_db()
		self.assertEqual(self.ride.fastest_car_number, 2)
		self.assertEqual(self.ride.estimated_pickup_minutes, 5)

	def test_cached_pairs_skip_the_maps_call(self, mock_get_client):
		client = mock_get_client.return_value
		client.is_configured = True
		client.distance_matrix.return_value = [[900], [300]]

		refresh_event_etas(self.event)
		refresh_event_etas(self.event, force=True)

		self.assertEqual(client.distance_matrix.call_count, 1)

	@override_settings(ETA_MATRIX_MAX_ELEMENTS=2)
	def test_requests_are_chunked(self, mock_get_client):
		make_ride(self.event, riders=2, pickup_latitude=Decimal('30.620000'), pickup_longitude=Decimal('-96.300000'))
		make_ride(self.event, riders=2, pickup_latitude=Decimal('30.630000'), pickup_longitude=Decimal('-96.300000'))
		client = mock_get_client.return_value
		client.is_configured = True
		client.distance_matrix.return_value = [[120], [240]]

		result = refresh_event_etas(self.event)

		# 2 cars x 1 pickup per request
		self.assertEqual(client.distance_matrix.call_count, 3)
		for call in client.distance_matrix.call_args_list:
			origins, destinations = call[0]
			self.assertEqual(len(origins) * len(destinations), 2)
		self.assertEqual(result.updated, 3)

	def test_maps_failure_falls_back(self, mock_get_client):
		client = mock_get_client.return_value
		client.is_configured = True
		client.distance_matrix.side_effect = MapsError('OVER_QUERY_LIMIT')

		result = refresh_event_etas(self.event)

		self.assertTrue(result.used_fallback)
		self.ride.refresh_from_db()
		self.assertEqual(self.ride.fastest_car_number, 1)

	def test_unreachable_pairs_are_ignored(self, mock_get_client):
		client = mock_get_client.return_value
		client.is_configured = True
		client.distance_matrix.return_value = [[None], [420]]

		refresh_event_etas(self.event)

		self.ride.refresh_from_db()
		self.assertEqual(self.ride.fastest_car_number, 2)
		self.assertEqual(self.ride.estimated_pickup_minutes, 7)

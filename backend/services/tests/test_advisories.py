from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch, MagicMock

import requests
from django.core.cache import cache
from django.test import TestCase, override_settings
from django.utils import timezone

from cars.models import CarLocation
from services.advisories import (
	SAFE, CAUTION, WARNING, DANGER,
	classify_weather,
	get_current_weather,
	weather_alert,
	weather_emoji,
	poll_event_weather,
	get_event_advisory,
	get_traffic_conditions,
	traffic_alert,
	get_ride_traffic,
)
from services.maps import MapsError
from services.ride_management import assign_car, mark_picked_up
from .helpers import make_member, make_event, make_ride


def _weather_response(condition_id, main='Rain', description='moderate rain'):
	response = MagicMock()
	response.json.return_value = {
		'weather': [{'id': condition_id, 'main': main, 'description': description, 'icon': '10n'}],
		'main': {'temp': 55.6, 'humidity': 90},
		'wind': {'speed': 12.4},
	}
	response.raise_for_status.return_value = None
	return response


class WeatherClassificationTests(TestCase):
	def test_condition_codes(self):
		self.assertEqual(classify_weather(211), DANGER)
		self.assertEqual(classify_weather(600), CAUTION)
		self.assertEqual(classify_weather(602), WARNING)
		self.assertEqual(classify_weather(500), CAUTION)
		self.assertEqual(classify_weather(502), WARNING)
		self.assertEqual(classify_weather(741), CAUTION)
		self.assertEqual(classify_weather(800), SAFE)
		self.assertEqual(classify_weather(301), SAFE)

	def test_alerts(self):
		self.assertIn('DANGEROUS CONDITIONS', weather_alert({'severity': DANGER, 'description': 'thunderstorm'}))
		self.assertIn('HAZARDOUS WEATHER', weather_alert({'severity': WARNING, 'description': 'heavy snow'}))
		self.assertIn('ADVERSE CONDITIONS', weather_alert({'severity': CAUTION, 'description': 'mist'}))
		self.assertIsNone(weather_alert({'severity': SAFE, 'description': 'clear sky'}))
		self.assertIsNone(weather_alert(None))

	def test_emoji_default(self):
		self.assertNotEqual(weather_emoji('Snow'), weather_emoji('Volcano'))


class CurrentWeatherTests(TestCase):
	def test_demo_reading_without_key(self):
		weather = get_current_weather(30.6, -96.3)
		self.assertEqual(weather['temp'], 72)
		self.assertEqual(weather['condition'], 'Clear')
		self.assertEqual(weather['severity'], SAFE)

	@override_settings(OPENWEATHER_API_KEY='key')
	@patch('services.advisories.weather.requests.get')
	def test_parses_response(self, mock_get):
		mock_get.return_value = _weather_response(502, description='heavy intensity rain')
		weather = get_current_weather(30.6, -96.3)

		self.assertEqual(weather['temp'], 56)
		self.assertEqual(weather['wind_speed'], 12)
		self.assertEqual(weather['severity'], WARNING)
		self.assertEqual(mock_get.call_args[1]['params']['units'], 'imperial')

	@override_settings(OPENWEATHER_API_KEY='key')
	@patch('services.advisories.weather.requests.get', side_effect=requests.ConnectionError('down'))
	def test_errors_return_none(self, mock_get):
		self.assertIsNone(get_current_weather(30.6, -96.3))


@override_settings(OPENWEATHER_API_KEY='key')
class PollEventWeatherTests(TestCase):
	def setUp(self):
		cache.clear()
		self.event = make_event(latitude=Decimal('30.600000'), longitude=Decimal('-96.300000'))

	@patch('realtime.notifications.notify_event_group')
	@patch('services.advisories.weather.requests.get')
	def test_broadcasts_only_on_severity_change(self, mock_get, mock_notify):
		mock_get.return_value = _weather_response(500)
		poll_event_weather(self.event)
		poll_event_weather(self.event)
		self.assertEqual(mock_notify.call_count, 1)

		mock_get.return_value = _weather_response(211, main='Thunderstorm', description='thunderstorm')
		advisory = poll_event_weather(self.event)
		self.assertEqual(mock_notify.call_count, 2)
		self.assertEqual(advisory['severity'], DANGER)
		self.assertEqual(mock_notify.call_args[0][1], 'weather_advisory')
		self.assertEqual(get_event_advisory(self.event)['severity'], DANGER)

	def test_event_without_coordinates(self):
		event = make_event(name='Nowhere', status='pending')
		self.assertIsNone(poll_event_weather(event))


class TrafficTests(TestCase):
	@patch('services.advisories.traffic.get_maps_client')
	def test_levels(self, mock_get_client):
		client = mock_get_client.return_value
		cases = [
			(600, 600 + 16 * 60, 'heavy', WARNING),
			(600, 600 + 10 * 60, 'moderate', CAUTION),
			(600, 600 + 2 * 60, 'light', SAFE),
		]
		for duration, in_traffic, level, severity in cases:
			client.directions.return_value = {
				'duration': duration,
				'duration_in_traffic': in_traffic,
				'distance_text': '5.2 mi',
				'distance_meters': 8400,
			}
			traffic = get_traffic_conditions((30.6, -96.3), (30.7, -96.4))
			self.assertEqual(traffic['traffic_level'], level)
			self.assertEqual(traffic['severity'], severity)
			self.assertEqual(traffic['duration'], 10)

	@patch('services.advisories.traffic.get_maps_client')
	def test_maps_failure_returns_none(self, mock_get_client):
		mock_get_client.return_value.directions.side_effect = MapsError('not configured')
		self.assertIsNone(get_traffic_conditions((30.6, -96.3), (30.7, -96.4)))

	def test_alerts(self):
		self.assertIn('HEAVY TRAFFIC: +20 min', traffic_alert({'traffic_level': 'heavy', 'delay': 20}))
		self.assertIn('MODERATE TRAFFIC: +8 min', traffic_alert({'traffic_level': 'moderate', 'delay': 8}))
		self.assertIsNone(traffic_alert({'traffic_level': 'light', 'delay': 1}))


@patch('services.advisories.traffic.get_traffic_conditions')
class RideTrafficTests(TestCase):
	def setUp(self):
		self.event = make_event(available_cars=1)
		self.dispatcher = make_member('deputy', role='deputy')
		self.ride = make_ride(
			self.event, riders=2,
			pickup_latitude=Decimal('30.610000'), pickup_longitude=Decimal('-96.300000'),
			dropoff_latitude=Decimal('30.650000'), dropoff_longitude=Decimal('-96.350000'),
		)
		assign_car(self.ride.id, 1, 1, self.dispatcher)
		self.ride.refresh_from_db()
		CarLocation.objects.create(event=self.event, car_number=1, latitude=Decimal('30.600000'), longitude=Decimal('-96.300000'))

	def test_heads_to_pickup_then_dropoff(self, mock_traffic):
		mock_traffic.return_value = {'traffic_level': 'light', 'delay': 0}

		traffic = get_ride_traffic(self.ride)
		self.assertEqual(traffic['heading_to'], 'pickup')
		self.assertEqual(mock_traffic.call_args[0][1], (30.61, -96.3))

		result = mark_picked_up(self.ride.id, 2, self.dispatcher)
		traffic = get_ride_traffic(result.ride)
		self.assertEqual(traffic['heading_to'], 'dropoff')
		self.assertEqual(mock_traffic.call_args[0][1], (30.65, -96.35))

	def test_needs_fresh_car_location(self, mock_traffic):
		CarLocation.objects.update(updated_at=timezone.now() - timedelta(hours=1))
		self.assertIsNone(get_ride_traffic(self.ride))
		mock_traffic.assert_not_called()

	def test_pending_rides_have_no_traffic(self, mock_traffic):
		pending = make_ride(self.event, riders=2)
		self.assertIsNone(get_ride_traffic(pending))

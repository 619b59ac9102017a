from datetime import timedelta

from django.test import SimpleTestCase
from django.utils import timezone

from common.utils import (
	calculate_distance,
	drive_seconds,
	round_coordinate,
	minutes_between,
	minutes_since,
	format_duration,
	wait_severity,
)


class GeoTests(SimpleTestCase):
	def test_distance(self):
		# 0.01 degree of latitude is about 1.11 km
		self.assertAlmostEqual(calculate_distance(30.6, -96.3, 30.61, -96.3), 1111.95, places=0)
		self.assertEqual(calculate_distance(30.6, -96.3, 30.6, -96.3), 0)

	def test_drive_seconds(self):
		self.assertAlmostEqual(drive_seconds(1000, 36), 100)

	def test_round_coordinate(self):
		self.assertEqual(round_coordinate('30.612345'), 30.6123)


class DurationTests(SimpleTestCase):
	def test_minutes_between(self):
		now = timezone.now()
		self.assertEqual(minutes_between(now - timedelta(minutes=12, seconds=50), now), 12)
		self.assertIsNone(minutes_between(None, now))

	def test_minutes_since_never_negative(self):
		now = timezone.now()
		self.assertEqual(minutes_since(now + timedelta(minutes=5), now=now), 0)
		self.assertEqual(minutes_since(None), 0)

	def test_format_duration(self):
		self.assertEqual(format_duration(None), 'N/A')
		self.assertEqual(format_duration(0), '< 1m')
		self.assertEqual(format_duration(42), '42m')
		self.assertEqual(format_duration(65), '1h 5m')

	def test_wait_severity_bands(self):
		self.assertEqual(
			[wait_severity(m) for m in (0, 4, 5, 9, 10, 14, 15, 90)],
			['green', 'green', 'yellow', 'yellow', 'orange', 'orange', 'red', 'red'],
		)

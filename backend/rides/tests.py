from datetime import timedelta
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIRequestFactory, force_authenticate
from unittest.mock import patch

from services.tests.helpers import make_member, make_event, make_roster, make_ride
from .models import Ride, RideTransition, BlockedNumber, AddressBlacklist
from .tasks import geocode_ride_task, refresh_event_etas_task
from . import views


class DispatchApiTestCase(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.event = make_event(available_cars=3)
		self.deputy = make_member('deputy', 'female', role='deputy')
		self.director = make_member('director', 'male', role='director')
		self.member = make_member('member', 'male')

		self.alex = make_member('alex', 'male')
		self.dan = make_member('dan', 'male')
		self.beth = make_member('beth', 'female')
		make_roster(self.event, 1, [self.alex, self.dan], driver=self.alex)
		make_roster(self.event, 2, [self.alex, self.beth], driver=self.beth)

	def post(self, view, path, data, user, **kwargs):
		request = self.factory.post(path, data, format='json')
		force_authenticate(request, user=user)
		return view(request, **kwargs)

	def get(self, view, path, user, **kwargs):
		request = self.factory.get(path)
		force_authenticate(request, user=user)
		return view(request, **kwargs)


class RideRequestApiTests(DispatchApiTestCase):
	def test_phone_room_creates_request_for_active_event(self):
		response = self.post(views.create_ride_request, '/api/rides/request/', {
			'patron_name': 'Sam',
			'phone': '(979) 555-0101',
			'pickup': '100 Main St',
			'dropoff': '200 College Ave',
			'riders': 2,
		}, self.member)

		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['message'], 'Request submitted successfully!')
		self.assertEqual(response.data['ride']['status'], 'pending')
		self.assertEqual(response.data['ride']['version'], 1)
		self.assertEqual(response.data['ride']['event'], self.event.id)

	def test_blocked_number_is_forbidden(self):
		BlockedNumber.objects.create(number='979-555-0101')
		response = self.post(views.create_ride_request, '/api/rides/request/', {
			'patron_name': 'Sam',
			'phone': '1 979 555 0101',
			'pickup': '100 Main St',
			'dropoff': '200 College Ave',
		}, self.member)

		self.assertEqual(response.status_code, 403)
		self.assertEqual(response.data['error'], 'blacklisted')
		self.assertFalse(Ride.objects.filter(patron_name='Sam').exists())

	def test_no_active_event(self):
		self.event.status = 'completed'
		self.event.save()
		response = self.post(views.create_ride_request, '/api/rides/request/', {
			'patron_name': 'Sam',
			'phone': '9795550101',
			'pickup': '100 Main St',
			'dropoff': '200 College Ave',
		}, self.member)

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['error'], 'event_not_active')

	def test_too_many_riders(self):
		response = self.post(views.create_ride_request, '/api/rides/request/', {
			'patron_name': 'Sam',
			'phone': '9795550101',
			'pickup': '100 Main St',
			'dropoff': '200 College Ave',
			'riders': 50,
		}, self.member)

		self.assertEqual(response.status_code, 400)
		self.assertIn('riders', response.data)


class AssignApiTests(DispatchApiTestCase):
	def test_members_cannot_dispatch(self):
		ride = make_ride(self.event, riders=2)
		response = self.post(views.assign_car, '/', {'car_number': 1, 'expected_version': 1},
		                     self.member, ride_id=ride.id)
		self.assertEqual(response.status_code, 403)

	def test_assign_returns_new_version(self):
		ride = make_ride(self.event, riders=2)
		response = self.post(views.assign_car, '/', {'car_number': 1, 'expected_version': 1},
		                     self.deputy, ride_id=ride.id)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['ride']['status'], 'active')
		self.assertEqual(response.data['ride']['car_number'], 1)
		self.assertEqual(response.data['ride']['version'], 2)
		self.assertEqual(response.data['ride']['assigned_driver']['id'], self.alex.id)

	def test_stale_version_is_conflict(self):
		ride = make_ride(self.event, riders=2)
		self.post(views.assign_car, '/', {'car_number': 1, 'expected_version': 1},
		          self.deputy, ride_id=ride.id)
		response = self.post(views.assign_car, '/', {'car_number': 2, 'expected_version': 1},
		                     self.director, ride_id=ride.id)

		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['error'], 'stale_version')
		self.assertEqual(response.data['current_version'], 2)

	def test_single_rider_in_single_gender_car(self):
		ride = make_ride(self.event, riders=1)
		response = self.post(views.assign_car, '/', {'car_number': 1, 'expected_version': 1},
		                     self.deputy, ride_id=ride.id)

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['error'], 'gender_ineligible')
		ride.refresh_from_db()
		self.assertEqual(ride.status, 'pending')
		self.assertEqual(ride.version, 1)

	def test_missing_ride(self):
		response = self.post(views.assign_car, '/', {'car_number': 1, 'expected_version': 1},
		                     self.deputy, ride_id=9999)
		self.assertEqual(response.status_code, 404)
		self.assertEqual(response.data['error'], 'ride_not_found')

	def test_expected_version_is_required(self):
		ride = make_ride(self.event, riders=2)
		response = self.post(views.assign_car, '/', {'car_number': 1}, self.deputy, ride_id=ride.id)
		self.assertEqual(response.status_code, 400)
		self.assertIn('expected_version', response.data)

	def test_batch_reports_each_item(self):
		first = make_ride(self.event, riders=2)
		second = make_ride(self.event, riders=1)
		response = self.post(views.assign_batch, '/', {'assignments': [
			{'ride_id': first.id, 'car_number': 1, 'expected_version': 1},
			{'ride_id': second.id, 'car_number': 1, 'expected_version': 1},
			{'ride_id': first.id, 'car_number': 2, 'expected_version': 2},
		]}, self.deputy)

		self.assertEqual(response.status_code, 200)
		self.assertFalse(response.data['success'])
		results = response.data['results']
		self.assertTrue(results[0]['success'])
		self.assertEqual(results[1]['error'], 'gender_ineligible')
		self.assertEqual(results[2]['error'], 'duplicate_in_batch')

	def test_detail_lists_eligible_cars(self):
		ride = make_ride(self.event, riders=1)
		response = self.get(views.ride_detail, '/', self.deputy, ride_id=ride.id)

		self.assertEqual(response.status_code, 200)
		eligible = {car['car_number']: car['eligible'] for car in response.data['cars']}
		self.assertFalse(eligible[1])
		self.assertTrue(eligible[2])
		self.assertFalse(response.data['can_undo'])


class RideProgressApiTests(DispatchApiTestCase):
	def setUp(self):
		super().setUp()
		self.ride = make_ride(self.event, riders=2)
		self.post(views.assign_car, '/', {'car_number': 2, 'expected_version': 1},
		          self.deputy, ride_id=self.ride.id)

	def test_reassign_reports_previous_car(self):
		response = self.post(views.reassign_ride, '/', {'car_number': 1, 'expected_version': 2},
		                     self.deputy, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['previous_car_number'], 2)
		self.assertEqual(response.data['ride']['car_number'], 1)

	def test_pickup_complete_and_queues(self):
		self.post(views.mark_picked_up, '/', {'expected_version': 2}, self.deputy, ride_id=self.ride.id)
		response = self.post(views.complete_ride, '/', {'expected_version': 3}, self.deputy, ride_id=self.ride.id)
		self.assertEqual(response.data['ride']['status'], 'completed')

		waiting = make_ride(self.event, riders=3)
		response = self.get(views.ride_queues, '/', self.deputy, event_id=self.event.id)
		self.assertEqual([r['id'] for r in response.data['pending']], [waiting.id])
		self.assertEqual(response.data['active'], [])
		self.assertEqual([r['id'] for r in response.data['completed']], [self.ride.id])

	def test_terminate_with_reason(self):
		response = self.post(views.terminate_ride, '/', {'expected_version': 2, 'reason': 'Patron was sick'},
		                     self.deputy, ride_id=self.ride.id)
		self.assertEqual(response.data['ride']['status'], 'terminated')
		self.assertEqual(response.data['ride']['termination_reason'], 'Patron was sick')

	def test_split_creates_second_ride(self):
		response = self.post(views.split_ride, '/', {'riders_to_move': 1, 'expected_version': 2},
		                     self.deputy, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['ride']['riders'], 1)
		self.assertEqual(response.data['split_ride']['riders'], 1)
		self.assertEqual(response.data['split_ride']['status'], 'pending')
		self.assertEqual(response.data['split_ride']['parent_ride'], self.ride.id)

	def test_undo_assignment(self):
		response = self.get(views.ride_detail, '/', self.deputy, ride_id=self.ride.id)
		self.assertTrue(response.data['can_undo'])
		self.assertEqual(response.data['undo_action'], 'assign')

		response = self.post(views.undo_ride_action, '/', {'expected_version': 2},
		                     self.deputy, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['undone_action'], 'assign')
		self.assertEqual(response.data['ride']['status'], 'pending')
		self.assertIsNone(response.data['ride']['car_number'])
		self.assertEqual(response.data['ride']['version'], 3)

	def test_undo_with_stale_version(self):
		response = self.post(views.undo_ride_action, '/', {'expected_version': 1},
		                     self.deputy, ride_id=self.ride.id)
		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['current_version'], 2)

	def test_edit_ride(self):
		request = self.factory.patch('/', {'expected_version': 2, 'dropoff': 'Kyle Field'}, format='json')
		force_authenticate(request, user=self.deputy)
		response = views.edit_ride(request, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['ride']['dropoff'], 'Kyle Field')
		self.assertEqual(response.data['ride']['version'], 3)

	def test_traffic_unavailable_without_car_location(self):
		response = self.get(views.ride_traffic, '/', self.member, ride_id=self.ride.id)
		self.assertEqual(response.status_code, 200)
		self.assertFalse(response.data['available'])


class BlacklistApiTests(DispatchApiTestCase):
	def test_only_directors_block_numbers(self):
		response = self.post(views.blocked_numbers, '/', {'number': '979-555-0199'}, self.deputy)
		self.assertEqual(response.status_code, 403)

		response = self.post(views.blocked_numbers, '/', {'number': '979-555-0199', 'reason': 'Prank calls'},
		                     self.director)
		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['number'], '9795550199')
		self.assertEqual(response.data['added_by'], 'director')

	def test_duplicate_number(self):
		BlockedNumber.objects.create(number='9795550199')
		response = self.post(views.blocked_numbers, '/', {'number': '+1 (979) 555-0199'}, self.director)
		self.assertEqual(response.status_code, 400)

	def test_unblock_number(self):
		blocked = BlockedNumber.objects.create(number='9795550199')
		request = self.factory.delete('/')
		force_authenticate(request, user=self.director)
		response = views.blocked_number_detail(request, number_id=blocked.id)

		self.assertEqual(response.status_code, 204)
		self.assertFalse(BlockedNumber.objects.exists())

	def test_address_request_needs_director_approval(self):
		response = self.post(views.address_blacklist, '/', {'address': '12 Fraternity Row', 'reason': 'Fights'},
		                     self.deputy)
		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['status'], 'pending')
		self.assertEqual(response.data['normalized_address'], '12 fraternity row')
		entry_id = response.data['id']

		response = self.post(views.approve_address, '/', {}, self.deputy, entry_id=entry_id)
		self.assertEqual(response.status_code, 403)

		response = self.post(views.approve_address, '/', {}, self.director, entry_id=entry_id)
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['status'], 'approved')
		self.assertEqual(response.data['approved_by'], 'director')

		response = self.post(views.approve_address, '/', {}, self.director, entry_id=entry_id)
		self.assertEqual(response.status_code, 400)

		response = self.post(views.create_ride_request, '/', {
			'patron_name': 'Sam',
			'phone': '9795550101',
			'pickup': '12 Fraternity Row, College Station',
			'dropoff': '200 College Ave',
		}, self.member)
		self.assertEqual(response.status_code, 403)


@patch('rides.tasks.refresh_event_etas_task.delay')
@patch('services.maps.get_maps_client')
class GeocodeTaskTests(TestCase):
	def setUp(self):
		self.event = make_event()

	def test_fills_missing_coordinates_without_version_bump(self, mock_get_client, mock_delay):
		client = mock_get_client.return_value
		client.is_configured = True
		client.geocode.side_effect = [(30.6123456789, -96.3), (30.65, -96.35)]
		ride = make_ride(self.event, riders=2)

		self.assertTrue(geocode_ride_task(ride.id))

		ride.refresh_from_db()
		self.assertEqual(ride.pickup_latitude, Decimal('30.612346'))
		self.assertEqual(ride.dropoff_longitude, Decimal('-96.350000'))
		self.assertEqual(ride.version, 1)
		mock_delay.assert_called_once_with(self.event.id)

	@patch('realtime.notifications.notify_ride_changed')
	def test_pushes_coordinates_to_boards(self, mock_notify, mock_get_client, mock_delay):
		client = mock_get_client.return_value
		client.is_configured = True
		client.geocode.return_value = (30.61, -96.31)
		ride = make_ride(self.event, riders=2)

		geocode_ride_task(ride.id)

		mock_notify.assert_called_once()
		pushed, action = mock_notify.call_args[0]
		self.assertEqual(action, 'geocoded')
		self.assertEqual(pushed.id, ride.id)
		self.assertEqual(pushed.pickup_latitude, Decimal('30.610000'))

	@patch('realtime.notifications.notify_ride_changed')
	def test_nothing_found_sends_nothing(self, mock_notify, mock_get_client, mock_delay):
		client = mock_get_client.return_value
		client.is_configured = True
		client.geocode.return_value = None
		ride = make_ride(self.event, riders=2)

		self.assertFalse(geocode_ride_task(ride.id))
		mock_notify.assert_not_called()

	def test_unconfigured_client(self, mock_get_client, mock_delay):
		mock_get_client.return_value.is_configured = False
		ride = make_ride(self.event, riders=2)

		self.assertFalse(geocode_ride_task(ride.id))
		mock_delay.assert_not_called()

	def test_missing_ride(self, mock_get_client, mock_delay):
		self.assertFalse(geocode_ride_task(12345))


class RefreshTaskTests(TestCase):
	@patch('services.eta.refresh_event_etas')
	def test_missing_event(self, mock_refresh):
		self.assertIsNone(refresh_event_etas_task(12345))
		mock_refresh.assert_not_called()


class ManagementCommandTests(TestCase):
	def setUp(self):
		self.event = make_event(status='completed')
		self.event.ended_at = timezone.now() - timedelta(days=60)
		self.event.save()
		self.deputy = make_member('deputy', role='deputy')

	def _old_finished_ride(self):
		ride = make_ride(self.event, riders=2, status='completed', completed_at=timezone.now() - timedelta(days=60))
		RideTransition.objects.create(
			ride=ride,
			action='complete',
			from_status='active',
			to_status='completed',
			version_before=3,
			version_after=4,
			performed_by=self.deputy,
			created_at=timezone.now() - timedelta(days=60),
		)
		return ride

	def test_cleanup_dry_run_keeps_data(self):
		self._old_finished_ride()
		out = StringIO()
		call_command('cleanup_old_data', '--dry-run', stdout=out)

		self.assertIn('Would delete 1 transitions and 1 rides', out.getvalue())
		self.assertEqual(Ride.objects.count(), 1)

	def test_cleanup_deletes_old_rides(self):
		self._old_finished_ride()
		recent = make_event(name='Last Week', status='completed')
		recent.ended_at = timezone.now() - timedelta(days=3)
		recent.save()
		kept = make_ride(recent, riders=2, status='completed')

		call_command('cleanup_old_data', stdout=StringIO())

		self.assertEqual(list(Ride.objects.values_list('id', flat=True)), [kept.id])
		self.assertFalse(RideTransition.objects.exists())

	def test_refresh_etas_without_active_event(self):
		from django.core.management.base import CommandError
		with self.assertRaises(CommandError):
			call_command('refresh_etas', stdout=StringIO())

	def test_refresh_etas_reports_skip(self):
		active = make_event(name='Tonight')
		out = StringIO()
		call_command('refresh_etas', '--event', str(active.id), '--force', stdout=out)
		self.assertIn('Skipped: no_pending_rides', out.getvalue())

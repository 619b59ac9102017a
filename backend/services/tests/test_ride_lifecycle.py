from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase, override_settings
from django.utils import timezone

from events.services import set_available_cars
from rides.models import Ride, RideTransition, BlockedNumber, AddressBlacklist
from services import ride_management
from services.ride_management import (
	RideNotFoundError,
	RideNotAvailableError,
	StaleRideError,
	GenderEligibilityError,
	NoCarsAvailableError,
	InvalidCarError,
	EventNotActiveError,
	BlacklistedError,
	InvalidSplitError,
	UndoNotAllowedError,
)
from services.ride_management.ride_lifecycle import _commit_update
from .helpers import make_member, make_event, make_roster, make_ride


class DispatchTestCase(TestCase):
	def setUp(self):
		self.event = make_event(available_cars=3)
		self.dispatcher = make_member('deputy', 'female', role='deputy')
		self.alex = make_member('alex', 'male')
		self.beth = make_member('beth', 'female')
		self.carl = make_member('carl', 'male')
		self.dave = make_member('dave', 'male')
		# car 1 mixed, car 2 all male, car 3 empty
		make_roster(self.event, 1, [self.alex, self.beth], driver=self.alex)
		make_roster(self.event, 2, [self.carl, self.dave], driver=self.carl)


class CreateRideRequestTests(DispatchTestCase):
	def test_creates_pending_ride(self):
		result = ride_management.create_ride_request(
			self.event,
			self.dispatcher,
			patron_name='Sam',
			phone='(979) 555-0111',
			pickup='12 Oak St',
			dropoff='34 Elm St',
			riders=2,
		)
		ride = result.ride
		self.assertTrue(result.success)
		self.assertEqual(ride.status, 'pending')
		self.assertEqual(ride.version, 1)
		self.assertEqual(ride.submitted_by, self.dispatcher)

	def test_rejects_inactive_event(self):
		event = make_event(status='pending', name='Next Week')
		with self.assertRaises(EventNotActiveError):
			ride_management.create_ride_request(
				event, self.dispatcher,
				patron_name='Sam', phone='9795550111', pickup='a', dropoff='b',
			)

	def test_rejects_blocked_number_in_any_format(self):
		BlockedNumber.objects.create(number='979-555-0111', reason='prank calls')
		with self.assertRaises(BlacklistedError):
			ride_management.create_ride_request(
				self.event, self.dispatcher,
				patron_name='Sam', phone='+1 (979) 555 0111', pickup='a', dropoff='b',
			)
		self.assertFalse(Ride.objects.filter(patron_name='Sam').exists())

	def test_rejects_approved_blacklisted_address(self):
		entry = AddressBlacklist.objects.create(address='500 Party Ln.', status='approved')
		with self.assertRaises(BlacklistedError) as ctx:
			ride_management.create_ride_request(
				self.event, self.dispatcher,
				patron_name='Sam', phone='9795550111',
				pickup='500 party ln, College Station TX', dropoff='b',
			)
		self.assertIn(entry.address, str(ctx.exception))

	def test_pending_blacklist_entry_does_not_block(self):
		AddressBlacklist.objects.create(address='500 Party Ln', status='pending')
		result = ride_management.create_ride_request(
			self.event, self.dispatcher,
			patron_name='Sam', phone='9795550111', pickup='500 Party Ln', dropoff='b',
		)
		self.assertTrue(result.success)

	def test_partial_word_does_not_match(self):
		AddressBlacklist.objects.create(address='50 Party Ln', status='approved')
		result = ride_management.create_ride_request(
			self.event, self.dispatcher,
			patron_name='Sam', phone='9795550111', pickup='150 Party Ln', dropoff='b',
		)
		self.assertTrue(result.success)


class AssignCarTests(DispatchTestCase):
	def test_assign_sets_car_driver_and_bumps_version(self):
		ride = make_ride(self.event, riders=1, estimated_pickup_minutes=7, fastest_car_number=2)
		result = ride_management.assign_car(ride.id, 1, 1, self.dispatcher)

		ride.refresh_from_db()
		self.assertEqual(result.ride.id, ride.id)
		self.assertEqual(ride.status, 'active')
		self.assertEqual(ride.car_number, 1)
		self.assertEqual(ride.assigned_driver, self.alex)
		self.assertIsNotNone(ride.assigned_at)
		self.assertEqual(ride.version, 2)
		self.assertIsNone(ride.estimated_pickup_minutes)
		self.assertIsNone(ride.fastest_car_number)

		transition = RideTransition.objects.get(ride=ride)
		self.assertEqual(transition.action, 'assign')
		self.assertEqual((transition.version_before, transition.version_after), (1, 2))
		self.assertEqual(transition.previous_state['status'], 'pending')
		self.assertEqual(transition.performed_by, self.dispatcher)

	def test_single_rider_rejected_for_single_gender_car(self):
		ride = make_ride(self.event, riders=1)
		with self.assertRaises(GenderEligibilityError):
			ride_management.assign_car(ride.id, 2, 1, self.dispatcher)
		ride.refresh_from_db()
		self.assertEqual(ride.status, 'pending')
		self.assertEqual(ride.version, 1)

	def test_group_can_ride_in_single_gender_car(self):
		ride = make_ride(self.event, riders=3)
		ride_management.assign_car(ride.id, 2, 1, self.dispatcher)
		ride.refresh_from_db()
		self.assertEqual(ride.car_number, 2)

	def test_roster_is_read_at_commit_time(self):
		ride = make_ride(self.event, riders=1)
		# Beth leaves car 1 after the dispatcher opened the assign dialog
		cars = {c['car_number']: c for c in ride_management.eligible_cars_for_ride(ride)}
		self.assertTrue(cars[1]['eligible'])
		self.event.car_assignments.get(car_number=1).members.remove(self.beth)

		with self.assertRaises(GenderEligibilityError):
			ride_management.assign_car(ride.id, 1, 1, self.dispatcher)

	def test_second_assignment_with_same_version_is_stale(self):
		ride = make_ride(self.event, riders=2)
		ride_management.assign_car(ride.id, 1, 1, self.dispatcher)

		with self.assertRaises(StaleRideError) as ctx:
			ride_management.assign_car(ride.id, 2, 1, self.dispatcher)
		self.assertEqual(ctx.exception.current_version, 2)

	def test_stale_version_reports_current_version(self):
		ride = make_ride(self.event, riders=2)
		ride_management.update_ride_details(ride.id, 1, self.dispatcher, patron_name='Renamed')

		with self.assertRaises(StaleRideError) as ctx:
			ride_management.assign_car(ride.id, 1, 1, self.dispatcher)
		self.assertEqual(ctx.exception.current_version, 2)

	def test_conditional_update_rejects_concurrent_write(self):
		ride = make_ride(self.event, riders=2)
		stale_copy = Ride.objects.get(id=ride.id)
		Ride.objects.filter(id=ride.id).update(version=2)

		with self.assertRaises(StaleRideError) as ctx:
			_commit_update(stale_copy, 1, {'status': 'active', 'car_number': 1})
		self.assertEqual(ctx.exception.current_version, 2)
		ride.refresh_from_db()
		self.assertEqual(ride.status, 'pending')

	def test_invalid_car_numbers(self):
		ride = make_ride(self.event, riders=2)
		with self.assertRaises(InvalidCarError):
			ride_management.assign_car(ride.id, 4, 1, self.dispatcher)
		with self.assertRaises(InvalidCarError):
			ride_management.assign_car(ride.id, 0, 1, self.dispatcher)

	def test_no_cars_available(self):
		self.event.available_cars = 0
		self.event.save()
		ride = make_ride(self.event, riders=2)
		with self.assertRaises(NoCarsAvailableError):
			ride_management.assign_car(ride.id, 1, 1, self.dispatcher)

	def test_missing_ride(self):
		with self.assertRaises(RideNotFoundError):
			ride_management.assign_car(99999, 1, 1, self.dispatcher)

	def test_event_must_be_active(self):
		ride = make_ride(self.event, riders=2)
		self.event.status = 'completed'
		self.event.save()
		with self.assertRaises(EventNotActiveError):
			ride_management.assign_car(ride.id, 1, 1, self.dispatcher)


class BatchAssignTests(DispatchTestCase):
	def test_each_item_succeeds_or_fails_on_its_own(self):
		ok = make_ride(self.event, riders=2)
		lone = make_ride(self.event, riders=1)
		stale = make_ride(self.event, riders=2)

		results = ride_management.assign_cars([
			{'ride_id': ok.id, 'car_number': 2, 'expected_version': 1},
			{'ride_id': lone.id, 'car_number': 2, 'expected_version': 1},
			{'ride_id': stale.id, 'car_number': 1, 'expected_version': 5},
			{'ride_id': ok.id, 'car_number': 1, 'expected_version': 1},
		], self.dispatcher)

		self.assertEqual([r['success'] for r in results], [True, False, False, False])
		self.assertEqual(results[1]['error'], 'gender_ineligible')
		self.assertEqual(results[2]['error'], 'stale_version')
		self.assertEqual(results[2]['current_version'], 1)
		self.assertEqual(results[3]['error'], 'duplicate_in_batch')

		ok.refresh_from_db()
		self.assertEqual((ok.status, ok.car_number), ('active', 2))


class ReassignAndProgressTests(DispatchTestCase):
	def setUp(self):
		super().setUp()
		self.ride = make_ride(self.event, riders=2)
		ride_management.assign_car(self.ride.id, 1, 1, self.dispatcher)

	def test_reassign_to_other_car(self):
		result = ride_management.reassign_ride(self.ride.id, 2, 2, self.dispatcher)
		self.assertEqual(result.ride.car_number, 2)
		self.assertEqual(result.ride.assigned_driver, self.carl)
		self.assertEqual(result.extra['previous_car_number'], 1)
		self.assertEqual(result.ride.version, 3)

	def test_reassign_to_same_car_is_rejected(self):
		with self.assertRaises(InvalidCarError):
			ride_management.reassign_ride(self.ride.id, 1, 2, self.dispatcher)

	def test_reassign_after_pickup_is_rejected(self):
		ride_management.mark_picked_up(self.ride.id, 2, self.dispatcher)
		with self.assertRaises(RideNotAvailableError):
			ride_management.reassign_ride(self.ride.id, 2, 3, self.dispatcher)

	def test_pickup_then_complete(self):
		ride_management.mark_picked_up(self.ride.id, 2, self.dispatcher)
		result = ride_management.complete_ride(self.ride.id, 3, self.dispatcher)
		self.assertEqual(result.ride.status, 'completed')
		self.assertIsNotNone(result.ride.picked_up_at)
		self.assertIsNotNone(result.ride.completed_at)

	def test_double_pickup_is_rejected(self):
		ride_management.mark_picked_up(self.ride.id, 2, self.dispatcher)
		with self.assertRaises(RideNotAvailableError):
			ride_management.mark_picked_up(self.ride.id, 3, self.dispatcher)

	def test_cancel_uses_default_reason(self):
		result = ride_management.cancel_ride(self.ride.id, 2, self.dispatcher, reason='')
		self.assertEqual(result.ride.status, 'cancelled')
		self.assertEqual(result.ride.cancellation_reason, 'No reason provided')

	def test_terminate_active_ride(self):
		result = ride_management.terminate_ride(self.ride.id, 2, self.dispatcher, reason='No show')
		self.assertEqual(result.ride.status, 'terminated')
		self.assertEqual(result.ride.termination_reason, 'No show')

	def test_terminate_pending_ride_is_rejected(self):
		pending = make_ride(self.event, riders=2)
		with self.assertRaises(RideNotAvailableError):
			ride_management.terminate_ride(pending.id, 1, self.dispatcher)

	def test_finished_ride_cannot_be_cancelled(self):
		ride_management.complete_ride(self.ride.id, 2, self.dispatcher)
		with self.assertRaises(RideNotAvailableError):
			ride_management.cancel_ride(self.ride.id, 3, self.dispatcher)


class EditRideTests(DispatchTestCase):
	def test_edit_updates_only_changed_fields(self):
		ride = make_ride(self.event, riders=2)
		result = ride_management.update_ride_details(
			ride.id, 1, self.dispatcher, patron_name='Pat Patron', dropoff='9 New Rd'
		)
		self.assertEqual(result.ride.dropoff, '9 New Rd')
		transition = RideTransition.objects.get(ride=ride, action='edit')
		self.assertEqual(transition.previous_state, {'dropoff': '200 College Ave'})

	def test_no_changes_keeps_version(self):
		ride = make_ride(self.event, riders=2)
		result = ride_management.update_ride_details(ride.id, 1, self.dispatcher, riders=2)
		self.assertEqual(result.ride.version, 1)
		self.assertFalse(RideTransition.objects.filter(ride=ride).exists())

	def test_active_ride_edited_to_single_rider_is_rechecked(self):
		ride = make_ride(self.event, riders=2)
		ride_management.assign_car(ride.id, 2, 1, self.dispatcher)
		with self.assertRaises(GenderEligibilityError):
			ride_management.update_ride_details(ride.id, 2, self.dispatcher, riders=1)

	def test_new_pickup_coordinates_clear_eta(self):
		ride = make_ride(self.event, riders=2, estimated_pickup_minutes=4, fastest_car_number=1)
		result = ride_management.update_ride_details(
			ride.id, 1, self.dispatcher,
			pickup_latitude=Decimal('30.600000'), pickup_longitude=Decimal('-96.300000'),
		)
		self.assertIsNone(result.ride.estimated_pickup_minutes)
		self.assertIsNone(result.ride.fastest_car_number)

	@patch('rides.tasks.geocode_ride_task.delay')
	def test_new_pickup_address_drops_old_coordinates(self, mock_geocode):
		ride = make_ride(
			self.event, riders=2,
			pickup_latitude=Decimal('30.600000'), pickup_longitude=Decimal('-96.300000'),
			estimated_pickup_minutes=4, fastest_car_number=1,
		)
		with self.captureOnCommitCallbacks(execute=True):
			result = ride_management.update_ride_details(
				ride.id, 1, self.dispatcher, pickup='77 Other St'
			)

		ride = result.ride
		self.assertIsNone(ride.pickup_latitude)
		self.assertIsNone(ride.pickup_longitude)
		self.assertIsNone(ride.estimated_pickup_minutes)
		self.assertIsNone(ride.fastest_car_number)
		mock_geocode.assert_called_once_with(ride.id)

		transition = RideTransition.objects.get(ride=ride, action='edit')
		self.assertEqual(transition.previous_state['pickup_latitude'], '30.600000')

	@patch('rides.tasks.geocode_ride_task.delay')
	def test_new_dropoff_address_keeps_eta(self, mock_geocode):
		ride = make_ride(
			self.event, riders=2,
			dropoff_latitude=Decimal('30.650000'), dropoff_longitude=Decimal('-96.350000'),
			estimated_pickup_minutes=4, fastest_car_number=1,
		)
		with self.captureOnCommitCallbacks(execute=True):
			result = ride_management.update_ride_details(
				ride.id, 1, self.dispatcher, dropoff='9 New Rd'
			)

		self.assertIsNone(result.ride.dropoff_latitude)
		self.assertIsNone(result.ride.dropoff_longitude)
		self.assertEqual(result.ride.estimated_pickup_minutes, 4)
		mock_geocode.assert_called_once_with(ride.id)

	@patch('rides.tasks.geocode_ride_task.delay')
	def test_new_address_with_coordinates_keeps_them(self, mock_geocode):
		ride = make_ride(self.event, riders=2)
		with self.captureOnCommitCallbacks(execute=True):
			result = ride_management.update_ride_details(
				ride.id, 1, self.dispatcher,
				pickup='77 Other St',
				pickup_latitude=Decimal('30.610000'), pickup_longitude=Decimal('-96.310000'),
			)

		self.assertEqual(result.ride.pickup_latitude, Decimal('30.610000'))
		mock_geocode.assert_not_called()

	def test_stale_edit_of_finished_ride_reports_version(self):
		ride = make_ride(self.event, riders=2)
		ride_management.cancel_ride(ride.id, 1, self.dispatcher)
		with self.assertRaises(StaleRideError) as ctx:
			ride_management.update_ride_details(ride.id, 1, self.dispatcher, patron_name='Late')
		self.assertEqual(ctx.exception.current_version, 2)


class SplitRideTests(DispatchTestCase):
	def test_split_creates_child_with_original_queue_position(self):
		ride = make_ride(self.event, riders=5)
		result = ride_management.split_ride(ride.id, 2, 1, self.dispatcher)

		child = result.extra['split_ride']
		self.assertEqual(result.ride.riders, 3)
		self.assertEqual(result.ride.version, 2)
		self.assertEqual(child.riders, 2)
		self.assertEqual(child.status, 'pending')
		self.assertEqual(child.parent_ride_id, ride.id)
		self.assertEqual(child.requested_at, ride.requested_at)
		self.assertEqual(child.pickup, ride.pickup)

	def test_split_bounds(self):
		ride = make_ride(self.event, riders=3)
		for riders_to_move in (0, 3, 4):
			with self.assertRaises(InvalidSplitError):
				ride_management.split_ride(ride.id, riders_to_move, 1, self.dispatcher)

	def test_single_rider_cannot_be_split(self):
		ride = make_ride(self.event, riders=1)
		with self.assertRaises(InvalidSplitError):
			ride_management.split_ride(ride.id, 1, 1, self.dispatcher)

	def test_split_leaving_lone_rider_in_ineligible_car(self):
		ride = make_ride(self.event, riders=2)
		ride_management.assign_car(ride.id, 2, 1, self.dispatcher)
		with self.assertRaises(GenderEligibilityError):
			ride_management.split_ride(ride.id, 1, 2, self.dispatcher)
		self.assertEqual(Ride.objects.filter(parent_ride=ride).count(), 0)

	def test_split_after_pickup_is_rejected(self):
		ride = make_ride(self.event, riders=3)
		ride_management.assign_car(ride.id, 1, 1, self.dispatcher)
		ride_management.mark_picked_up(ride.id, 2, self.dispatcher)
		with self.assertRaises(RideNotAvailableError):
			ride_management.split_ride(ride.id, 1, 3, self.dispatcher)


class UndoTests(DispatchTestCase):
	def test_undo_assignment_restores_pending(self):
		ride = make_ride(self.event, riders=2)
		ride_management.assign_car(ride.id, 1, 1, self.dispatcher)

		result = ride_management.undo_last_transition(ride.id, 2, self.dispatcher)
		ride = result.ride
		self.assertEqual(ride.status, 'pending')
		self.assertIsNone(ride.car_number)
		self.assertIsNone(ride.assigned_driver_id)
		self.assertIsNone(ride.assigned_at)
		self.assertEqual(ride.version, 3)
		self.assertEqual(result.extra['undone_action'], 'assign')

		assign = RideTransition.objects.get(ride=ride, action='assign')
		self.assertIsNotNone(assign.undone_at)
		undo = RideTransition.objects.get(ride=ride, action='undo')
		self.assertFalse(undo.undoable)

	def test_undo_restores_timestamps(self):
		ride = make_ride(self.event, riders=2)
		ride_management.assign_car(ride.id, 1, 1, self.dispatcher)
		assigned_at = Ride.objects.get(id=ride.id).assigned_at
		ride_management.complete_ride(ride.id, 2, self.dispatcher)

		result = ride_management.undo_last_transition(ride.id, 3, self.dispatcher)
		self.assertEqual(result.ride.status, 'active')
		self.assertIsNone(result.ride.completed_at)
		self.assertEqual(result.ride.assigned_at, assigned_at)

	def test_undo_twice_is_rejected(self):
		ride = make_ride(self.event, riders=2)
		ride_management.assign_car(ride.id, 1, 1, self.dispatcher)
		ride_management.undo_last_transition(ride.id, 2, self.dispatcher)
		with self.assertRaises(UndoNotAllowedError):
			ride_management.undo_last_transition(ride.id, 3, self.dispatcher)

	def test_nothing_to_undo(self):
		ride = make_ride(self.event, riders=2)
		with self.assertRaises(UndoNotAllowedError):
			ride_management.undo_last_transition(ride.id, 1, self.dispatcher)

	def test_undo_window_expires(self):
		ride = make_ride(self.event, riders=2)
		ride_management.assign_car(ride.id, 1, 1, self.dispatcher)
		RideTransition.objects.filter(ride=ride).update(
			created_at=timezone.now() - timedelta(minutes=10)
		)
		with self.assertRaises(UndoNotAllowedError):
			ride_management.undo_last_transition(ride.id, 2, self.dispatcher)

	@override_settings(RIDE_UNDO_WINDOW_SECONDS=3600)
	def test_undo_window_is_configurable(self):
		ride = make_ride(self.event, riders=2)
		ride_management.assign_car(ride.id, 1, 1, self.dispatcher)
		RideTransition.objects.filter(ride=ride).update(
			created_at=timezone.now() - timedelta(minutes=10)
		)
		result = ride_management.undo_last_transition(ride.id, 2, self.dispatcher)
		self.assertEqual(result.ride.status, 'pending')

	def test_undo_with_stale_version(self):
		ride = make_ride(self.event, riders=2)
		ride_management.assign_car(ride.id, 1, 1, self.dispatcher)
		with self.assertRaises(StaleRideError):
			ride_management.undo_last_transition(ride.id, 1, self.dispatcher)

	def test_undo_split_removes_untouched_child(self):
		ride = make_ride(self.event, riders=4)
		result = ride_management.split_ride(ride.id, 1, 1, self.dispatcher)
		child_id = result.extra['split_ride'].id

		undone = ride_management.undo_last_transition(ride.id, 2, self.dispatcher)
		self.assertEqual(undone.ride.riders, 4)
		self.assertFalse(Ride.objects.filter(id=child_id).exists())

	def test_undo_split_blocked_once_child_dispatched(self):
		ride = make_ride(self.event, riders=4)
		result = ride_management.split_ride(ride.id, 2, 1, self.dispatcher)
		child = result.extra['split_ride']
		ride_management.assign_car(child.id, 1, 1, self.dispatcher)

		with self.assertRaises(UndoNotAllowedError):
			ride_management.undo_last_transition(ride.id, 2, self.dispatcher)
		self.assertTrue(Ride.objects.filter(id=child.id).exists())

	def test_undo_cancel_rechecks_single_rider_rule(self):
		ride = make_ride(self.event, riders=1)
		ride_management.assign_car(ride.id, 1, 1, self.dispatcher)
		ride_management.cancel_ride(ride.id, 2, self.dispatcher)
		self.event.car_assignments.get(car_number=1).members.remove(self.beth)

		with self.assertRaises(GenderEligibilityError):
			ride_management.undo_last_transition(ride.id, 3, self.dispatcher)

	def test_undo_reassign_to_car_no_longer_on_the_road(self):
		ride = make_ride(self.event, riders=2)
		ride_management.assign_car(ride.id, 3, 1, self.dispatcher)
		ride_management.reassign_ride(ride.id, 1, 2, self.dispatcher)
		set_available_cars(self.event, 1)

		with self.assertRaises(InvalidCarError):
			ride_management.undo_last_transition(ride.id, 3, self.dispatcher)
		ride.refresh_from_db()
		self.assertEqual((ride.car_number, ride.version), (1, 3))

	def test_get_undoable_transition(self):
		ride = make_ride(self.event, riders=2)
		self.assertIsNone(ride_management.get_undoable_transition(ride))
		ride_management.assign_car(ride.id, 1, 1, self.dispatcher)
		ride.refresh_from_db()
		self.assertEqual(ride_management.get_undoable_transition(ride).action, 'assign')


class QueueTests(DispatchTestCase):
	def test_queue_ordering(self):
		now = timezone.now()
		first = make_ride(self.event, riders=2, requested_at=now - timedelta(minutes=10))
		second = make_ride(self.event, riders=2, requested_at=now - timedelta(minutes=5))
		active_old = make_ride(self.event, riders=2, requested_at=now - timedelta(minutes=20))
		active_new = make_ride(self.event, riders=2, requested_at=now - timedelta(minutes=1))
		ride_management.assign_car(active_old.id, 1, 1, self.dispatcher)
		ride_management.assign_car(active_new.id, 2, 1, self.dispatcher)
		ride_management.complete_ride(active_old.id, 2, self.dispatcher)

		queues = ride_management.get_ride_queues(self.event)
		self.assertEqual([r.id for r in queues['pending']], [first.id, second.id])
		self.assertEqual([r.id for r in queues['active']], [active_new.id])
		self.assertEqual([r.id for r in queues['completed']], [active_old.id])


class FollowUpSchedulingTests(DispatchTestCase):
	@patch('rides.tasks.refresh_event_etas_task.delay')
	@patch('rides.tasks.geocode_ride_task.delay')
	def test_new_ride_without_coordinates_is_geocoded(self, mock_geocode, mock_refresh):
		with self.captureOnCommitCallbacks(execute=True):
			result = ride_management.create_ride_request(
				self.event, self.dispatcher,
				patron_name='Sam', phone='9795550111', pickup='a', dropoff='b',
			)
		mock_geocode.assert_called_once_with(result.ride.id)
		mock_refresh.assert_not_called()

	@patch('rides.tasks.refresh_event_etas_task.delay')
	@patch('rides.tasks.geocode_ride_task.delay')
	def test_new_ride_with_coordinates_refreshes_etas(self, mock_geocode, mock_refresh):
		with self.captureOnCommitCallbacks(execute=True):
			ride_management.create_ride_request(
				self.event, self.dispatcher,
				patron_name='Sam', phone='9795550111', pickup='a', dropoff='b',
				pickup_latitude=Decimal('30.6'), pickup_longitude=Decimal('-96.3'),
			)
		mock_refresh.assert_called_once_with(self.event.id)
		mock_geocode.assert_not_called()

	@patch('realtime.notifications.notify_ride_changed')
	def test_assignment_notifies_after_commit(self, mock_notify):
		ride = make_ride(self.event, riders=2)
		with self.captureOnCommitCallbacks(execute=True):
			ride_management.assign_car(ride.id, 1, 1, self.dispatcher)
		mock_notify.assert_called_once()
		self.assertEqual(mock_notify.call_args[0][1], 'assign')

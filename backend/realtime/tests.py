from unittest.mock import patch, AsyncMock

from channels.db import database_sync_to_async
from channels.layers import get_channel_layer
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser
from django.test import TestCase, TransactionTestCase
from rest_framework_simplejwt.tokens import AccessToken

from cars.models import CarLocation
from realtime.notifications import (
	event_group_name,
	car_group_name,
	notify_event_group,
	notify_car_group,
	notify_ride_changed,
)
from realtime.middleware import JWTAuthMiddleware, member_for_token
from realtime.routing import websocket_urlpatterns
from services.tests.helpers import make_member, make_event, make_roster, make_ride


class GroupNameTests(TestCase):
	def test_names(self):
		self.assertEqual(event_group_name(4), 'event_4')
		self.assertEqual(car_group_name(4, 2), 'event_4_car_2')


@patch('realtime.notifications._group_send', return_value=True)
class NotifyTests(TestCase):
	def setUp(self):
		self.event = make_event()
		self.ride = make_ride(self.event, riders=2)

	def _sent(self, mock_send):
		return [(call[0][0], call[0][1]['type']) for call in mock_send.call_args_list]

	def test_event_group_payload(self, mock_send):
		notify_event_group(self.event.id, 'roster_updated', {'event_id': self.event.id})
		mock_send.assert_called_once_with(
			f'event_{self.event.id}',
			{'type': 'roster_updated', 'event_id': self.event.id},
		)

	def test_car_group_needs_car(self, mock_send):
		self.assertFalse(notify_car_group(self.event.id, None, 'ride_updated'))
		mock_send.assert_not_called()

	def test_new_ride_goes_to_dispatch_only(self, mock_send):
		notify_ride_changed(self.ride, 'created')
		self.assertEqual(self._sent(mock_send), [(f'event_{self.event.id}', 'ride_created')])

		payload = mock_send.call_args[0][1]
		self.assertEqual(payload['ride_id'], self.ride.id)
		self.assertEqual(payload['version'], 1)
		self.assertEqual(payload['ride']['patron_name'], 'Pat Patron')

	def test_reassign_notifies_both_cars(self, mock_send):
		self.ride.status = 'active'
		self.ride.car_number = 2
		notify_ride_changed(self.ride, 'reassign', extra={'previous_car_number': 1})

		self.assertEqual(self._sent(mock_send), [
			(f'event_{self.event.id}', 'ride_updated'),
			(f'event_{self.event.id}_car_2', 'ride_assigned'),
			(f'event_{self.event.id}_car_1', 'ride_updated'),
		])
		self.assertTrue(mock_send.call_args[0][1]['removed'])

	def test_progress_updates_car(self, mock_send):
		self.ride.status = 'active'
		self.ride.car_number = 3
		notify_ride_changed(self.ride, 'pickup')

		self.assertEqual(self._sent(mock_send), [
			(f'event_{self.event.id}', 'ride_updated'),
			(f'event_{self.event.id}_car_3', 'ride_updated'),
		])


class GroupSendFailureTests(TestCase):
	@patch('realtime.notifications.get_channel_layer')
	def test_failed_send_is_logged_not_raised(self, mock_layer):
		mock_layer.return_value.group_send = AsyncMock(side_effect=RuntimeError('redis down'))
		self.assertFalse(notify_event_group(1, 'ride_updated'))

	@patch('realtime.notifications.get_channel_layer', return_value=None)
	def test_without_channel_layer(self, mock_layer):
		self.assertFalse(notify_event_group(1, 'ride_updated'))


application = JWTAuthMiddleware(URLRouter(websocket_urlpatterns))


def _token(user):
	return str(AccessToken.for_user(user))


class SocketTestCase(TransactionTestCase):
	def setUp(self):
		self.event = make_event(available_cars=2)
		self.deputy = make_member('deputy', 'female', role='deputy')
		self.alex = make_member('alex', 'male')
		self.beth = make_member('beth', 'female')
		self.outsider = make_member('outsider', 'male')
		make_roster(self.event, 1, [self.alex, self.beth], driver=self.alex)

	def _communicator(self, path, user=None, token=None):
		if user is not None:
			token = _token(user)
		if token is not None:
			path = f'{path}?token={token}'
		return WebsocketCommunicator(application, path)

	def dispatch_path(self, event_id=None):
		return f'/ws/events/{event_id or self.event.id}/dispatch/'

	def car_path(self, car_number):
		return f'/ws/events/{self.event.id}/cars/{car_number}/'


class JWTAuthMiddlewareTests(SocketTestCase):
	async def test_valid_token_resolves_member(self):
		member = await member_for_token(_token(self.deputy))
		self.assertEqual(member.id, self.deputy.id)

	async def test_garbage_token_is_anonymous(self):
		member = await member_for_token('not-a-token')
		self.assertIsInstance(member, AnonymousUser)

	async def test_inactive_member_is_anonymous(self):
		token = _token(self.alex)
		await database_sync_to_async(
			lambda: type(self.alex).objects.filter(id=self.alex.id).update(is_active=False)
		)()
		member = await member_for_token(token)
		self.assertIsInstance(member, AnonymousUser)

	async def test_connection_without_token_is_closed(self):
		communicator = self._communicator(self.dispatch_path())
		connected, _ = await communicator.connect()
		self.assertFalse(connected)

	async def test_connection_with_bad_token_is_closed(self):
		communicator = self._communicator(self.dispatch_path(), token='garbage')
		connected, _ = await communicator.connect()
		self.assertFalse(connected)


class DispatchConsumerTests(SocketTestCase):
	async def test_dispatcher_joins_event_board(self):
		communicator = self._communicator(self.dispatch_path(), self.deputy)
		connected, _ = await communicator.connect()
		self.assertTrue(connected)

		greeting = await communicator.receive_json_from()
		self.assertEqual(greeting['type'], 'connection_established')
		self.assertEqual(greeting['event_id'], self.event.id)
		self.assertEqual(greeting['role'], 'deputy')

		await get_channel_layer().group_send(
			f'event_{self.event.id}', {'type': 'roster_updated', 'event_id': self.event.id}
		)
		pushed = await communicator.receive_json_from()
		self.assertEqual(pushed, {'type': 'roster_updated', 'event_id': self.event.id})

		await communicator.send_json_to({'type': 'ping'})
		self.assertEqual(await communicator.receive_json_from(), {'type': 'pong'})
		await communicator.disconnect()

	async def test_plain_member_is_rejected(self):
		communicator = self._communicator(self.dispatch_path(), self.alex)
		connected, _ = await communicator.connect()
		self.assertFalse(connected)

	async def test_unknown_event_is_rejected(self):
		communicator = self._communicator(self.dispatch_path(event_id=99999), self.deputy)
		connected, _ = await communicator.connect()
		self.assertFalse(connected)

	async def test_message_without_type(self):
		communicator = self._communicator(self.dispatch_path(), self.deputy)
		await communicator.connect()
		await communicator.receive_json_from()

		await communicator.send_json_to({'latitude': 1})
		reply = await communicator.receive_json_from()
		self.assertEqual(reply['type'], 'error')
		await communicator.disconnect()


class CarConsumerTests(SocketTestCase):
	async def test_crew_member_connects_to_own_car(self):
		communicator = self._communicator(self.car_path(1), self.beth)
		connected, _ = await communicator.connect()
		self.assertTrue(connected)

		greeting = await communicator.receive_json_from()
		self.assertEqual(greeting['type'], 'connection_established')
		self.assertEqual(greeting['car_number'], 1)
		await communicator.disconnect()

	async def test_member_of_no_crew_is_rejected(self):
		communicator = self._communicator(self.car_path(1), self.outsider)
		connected, _ = await communicator.connect()
		self.assertFalse(connected)

	async def test_crew_member_cannot_join_other_car(self):
		communicator = self._communicator(self.car_path(2), self.alex)
		connected, _ = await communicator.connect()
		self.assertFalse(connected)

	async def test_car_beyond_event_count_is_rejected(self):
		communicator = self._communicator(self.car_path(3), self.deputy)
		connected, _ = await communicator.connect()
		self.assertFalse(connected)

	async def test_dispatcher_may_watch_any_car(self):
		communicator = self._communicator(self.car_path(2), self.deputy)
		connected, _ = await communicator.connect()
		self.assertTrue(connected)
		await communicator.disconnect()

	async def test_location_update_is_stored(self):
		communicator = self._communicator(self.car_path(1), self.alex)
		await communicator.connect()
		await communicator.receive_json_from()

		await communicator.send_json_to({
			'type': 'location_update',
			'latitude': 30.6187,
			'longitude': -96.3365,
		})
		self.assertEqual(await communicator.receive_json_from(), {'type': 'location_saved'})
		await communicator.disconnect()

		location = await database_sync_to_async(
			lambda: CarLocation.objects.get(event=self.event, car_number=1)
		)()
		self.assertAlmostEqual(float(location.latitude), 30.6187, places=4)
		self.assertAlmostEqual(float(location.longitude), -96.3365, places=4)

	async def test_location_update_out_of_range(self):
		communicator = self._communicator(self.car_path(1), self.alex)
		await communicator.connect()
		await communicator.receive_json_from()

		await communicator.send_json_to({'type': 'location_update', 'latitude': 95, 'longitude': 0})
		reply = await communicator.receive_json_from()
		self.assertEqual(reply['type'], 'error')
		await communicator.disconnect()

		exists = await database_sync_to_async(
			lambda: CarLocation.objects.filter(event=self.event).exists()
		)()
		self.assertFalse(exists)

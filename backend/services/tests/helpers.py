from django.contrib.auth import get_user_model
from django.utils import timezone

from events.models import Event, CarAssignment
from rides.models import Ride

User = get_user_model()


def make_member(username, gender='', role='member'):
	return User.objects.create_user(
		username=username,
		password='pass1234',
		role=role,
		gender=gender,
	)


def make_event(available_cars=3, status='active', **kwargs):
	return Event.objects.create(
		name=kwargs.pop('name', 'Friday Night'),
		event_date=kwargs.pop('event_date', timezone.now()),
		status=status,
		available_cars=available_cars,
		activated_at=timezone.now() if status == 'active' else None,
		**kwargs
	)


def make_roster(event, car_number, members, driver=None):
	assignment = CarAssignment.objects.create(event=event, car_number=car_number, driver=driver)
	assignment.members.set(members)
	return assignment


def make_ride(event, riders=1, **kwargs):
	defaults = {
		'patron_name': 'Pat Patron',
		'phone': '979-555-0100',
		'pickup': '100 Main St',
		'dropoff': '200 College Ave',
		'riders': riders,
	}
	defaults.update(kwargs)
	return Ride.objects.create(event=event, **defaults)

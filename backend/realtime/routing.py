"""WebSocket URL routing for the realtime app."""

from django.urls import re_path

from .consumers.dispatch_consumer import DispatchConsumer
from .consumers.car_consumer import CarConsumer

websocket_urlpatterns = [
    # Dispatch board of one event
    # URL: ws://localhost:8000/ws/events/<event_id>/dispatch/?token=<access>
    re_path(
        r"ws/events/(?P<event_id>\d+)/dispatch/$",
        DispatchConsumer.as_asgi(),
        name="dispatch-ws"
    ),

    # Crew of one car
    # URL: ws://localhost:8000/ws/events/<event_id>/cars/<car_number>/?token=<access>
    re_path(
        r"ws/events/(?P<event_id>\d+)/cars/(?P<car_number>\d+)/$",
        CarConsumer.as_asgi(),
        name="car-ws"
    ),
]

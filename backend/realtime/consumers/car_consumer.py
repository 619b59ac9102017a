"""Car crew WebSocket consumer for location pings and ride assignments."""

import logging
from typing import Dict, Any

from channels.db import database_sync_to_async

from cars.services import update_car_location, InvalidCarNumberError
from events.models import CarAssignment
from realtime.notifications import car_group_name
from .base import BaseConsumer

logger = logging.getLogger(__name__)


class CarConsumer(BaseConsumer):
    """
    WebSocket consumer for the crew of one car.

    Handles:
        - Location pings (stored and relayed to the dispatch board)
        - Ride assignments and updates for this car
    """

    async def authorize(self) -> bool:
        self.car_number = int(self.scope["url_route"]["kwargs"]["car_number"])
        if self.car_number < 1 or self.car_number > self.event.available_cars:
            return False
        if getattr(self.user, "can_dispatch", False):
            return True
        return await self._is_crew_member()

    def get_groups(self):
        return [car_group_name(self.event_id, self.car_number)]

    async def on_connect(self):
        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
            "event_id": self.event_id,
            "car_number": self.car_number,
            "message": f"Car {self.car_number} connected",
        })

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        if msg_type == "location_update":
            await self._handle_location_update(data)
        else:
            await super().handle_message(msg_type, data)

    # ---------------------- Message Handlers ----------------------

    async def _handle_location_update(self, data: Dict[str, Any]):
        lat = data.get("latitude")
        lon = data.get("longitude")

        if lat is None or lon is None:
            await self.send_error("location_update requires latitude and longitude")
            return

        try:
            lat = float(lat)
            lon = float(lon)
        except (TypeError, ValueError):
            await self.send_error("latitude and longitude must be numbers")
            return

        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            await self.send_error("Coordinates out of range")
            return

        try:
            await self._store_location(lat, lon)
        except InvalidCarNumberError as e:
            await self.send_error(str(e))
            return

        logger.debug("Car %s of event %s at %s,%s", self.car_number, self.event_id, lat, lon)
        await self.send_json({"type": "location_saved"})

    # ---------------------- Event Handlers (from group_send) ----------------------

    async def ride_assigned(self, event):
        """Sent when a ride is assigned (or moved) to this car."""
        await self.forward(event)

    # ---------------------- Database Helpers ----------------------

    @database_sync_to_async
    def _is_crew_member(self) -> bool:
        return CarAssignment.objects.filter(
            event_id=self.event_id,
            car_number=self.car_number,
            members=self.user,
        ).exists()

    @database_sync_to_async
    def _store_location(self, lat: float, lon: float):
        self.event.refresh_from_db(fields=["available_cars"])
        return update_car_location(self.event, self.car_number, lat, lon)

"""Dispatch board WebSocket consumer: live queue for one event."""

import logging

from .base import BaseConsumer

logger = logging.getLogger(__name__)


class DispatchConsumer(BaseConsumer):
    """
    WebSocket consumer for dispatchers.

    Handles:
        - New ride requests and every ride change of the event
        - ETA refreshes, car positions and weather advisories
        - Roster changes
    """

    async def authorize(self) -> bool:
        return bool(getattr(self.user, "can_dispatch", False))

    def get_groups(self):
        return [self.event.group_name]

    async def on_connect(self):
        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
            "event_id": self.event_id,
            "message": "Dispatch board connected",
        })
        logger.info("Dispatcher %s joined event %s", self.user_id, self.event_id)

    # ---------------------- Event Handlers (from group_send) ----------------------

    async def ride_created(self, event):
        await self.forward(event)

    async def etas_updated(self, event):
        await self.forward(event)

    async def car_location_updated(self, event):
        await self.forward(event)

    async def weather_advisory(self, event):
        await self.forward(event)

    async def roster_updated(self, event):
        await self.forward(event)

    async def event_status_changed(self, event):
        await self.forward(event)

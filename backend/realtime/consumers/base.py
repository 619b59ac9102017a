"""Base WebSocket consumer with shared functionality for all consumers."""

import logging
from typing import Dict, Any, Set

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from events.models import Event

logger = logging.getLogger(__name__)


class BaseConsumer(AsyncJsonWebsocketConsumer):
    """
    Base consumer with shared connection management and helper methods.

    Every consumer is scoped to one event taken from the URL.

    Subclasses should override:
        - authorize(): return True if the user may join
        - get_groups(): return list of groups to join on connect
        - handle_message(msg_type, data): handle incoming messages
    """

    async def connect(self):
        self.user = self.scope["user"]

        if self.user.is_anonymous:
            await self.close()
            return

        self.user_id = getattr(self.user, "id", None)
        self.role = getattr(self.user, "role", None)
        self.event_id = int(self.scope["url_route"]["kwargs"]["event_id"])
        self.joined_groups: Set[str] = set()

        self.event = await self._get_event(self.event_id)
        if self.event is None or not await self.authorize():
            await self.close()
            return

        for group in self.get_groups():
            await self._join_group(group)

        await self.accept()
        await self.on_connect()

    async def authorize(self) -> bool:
        return True

    def get_groups(self):
        return []

    async def on_connect(self):
        """Override in subclass for custom connect logic."""
        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
            "event_id": self.event_id,
        })

    async def disconnect(self, close_code):
        """Leave all joined groups on disconnect."""
        try:
            for group in list(getattr(self, "joined_groups", ())):
                await self._leave_group(group)
        except Exception:
            logger.exception("Error during disconnect for user %s", getattr(self, "user_id", "unknown"))

    async def receive_json(self, data: Dict[str, Any]):
        """Route incoming messages to appropriate handlers."""
        msg_type = data.get("type")
        if not msg_type:
            await self.send_error("Message type is required")
            return

        try:
            await self.handle_message(msg_type, data)
        except Exception:
            logger.exception("Error handling message type %s", msg_type)
            await self.send_error(f"Error processing {msg_type}")

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        """Override in subclass to handle specific message types."""
        if msg_type == "ping":
            await self.send_json({"type": "pong"})
            return
        await self.send_error(f"Unknown message type: {msg_type}")

    # ---------------------- Group Management Helpers ----------------------

    async def _join_group(self, group_name: str):
        """Join a channel group and track it."""
        await self.channel_layer.group_add(group_name, self.channel_name)
        self.joined_groups.add(group_name)

    async def _leave_group(self, group_name: str):
        """Leave a channel group and untrack it."""
        await self.channel_layer.group_discard(group_name, self.channel_name)
        self.joined_groups.discard(group_name)

    # ---------------------- Response Helpers ----------------------

    async def send_error(self, message: str):
        """Send an error message to the client."""
        await self.send_json({
            "type": "error",
            "message": message,
        })

    async def forward(self, event):
        """Relay a group event to the client as-is."""
        await self.send_json(event)

    # ---------------------- Common Event Handlers ----------------------
    # These handle group_send events from server-side code

    async def ride_updated(self, event):
        """Sent when a ride changes state or details."""
        await self.forward(event)

    # ---------------------- Database Helpers ----------------------

    @database_sync_to_async
    def _get_event(self, event_id: int):
        return Event.objects.filter(id=event_id).first()

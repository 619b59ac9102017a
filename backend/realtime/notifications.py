"""
Notification helpers for sending WebSocket messages to connected clients.

Groups:
    - event_<event_id>: every dispatch screen of the event
    - event_<event_id>_car_<n>: the crew of one car

Sends are best-effort: a failed push is logged and never undoes the
state change that triggered it.
"""

import logging
from typing import Dict, Any, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)


def event_group_name(event_id: int) -> str:
    return f"event_{event_id}"


def car_group_name(event_id: int, car_number: int) -> str:
    return f"event_{event_id}_car_{car_number}"


def _group_send(group: str, payload: Dict[str, Any]) -> bool:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return False

    try:
        logger.debug("WS -> %s: %s", group, payload.get("type"))
        async_to_sync(channel_layer.group_send)(group, payload)
        return True
    except Exception:
        logger.exception("Failed to send %s to %s", payload.get("type"), group)
        return False


def notify_event_group(event_id: int, event_type: str, payload: Optional[Dict[str, Any]] = None) -> bool:
    """
    Send an event to every dispatch screen of an event.

    Args:
        event_id: Event whose group to notify
        event_type: Handler name in DispatchConsumer (ride_created, ride_updated,
            etas_updated, car_location_updated, weather_advisory, roster_updated)
        payload: Event data

    Returns:
        True if sent successfully, False otherwise
    """
    return _group_send(event_group_name(event_id), {"type": event_type, **(payload or {})})


def notify_car_group(event_id: int, car_number: int, event_type: str,
                     payload: Optional[Dict[str, Any]] = None) -> bool:
    """Send an event to the crew of one car (ride_assigned, ride_updated)."""
    if not car_number:
        return False
    return _group_send(
        car_group_name(event_id, car_number),
        {"type": event_type, **(payload or {})},
    )


def notify_ride_changed(ride, action: str, extra: Optional[Dict[str, Any]] = None) -> bool:
    """
    Push a ride change to the dispatch board and the affected car(s).

    New rides go out as ride_created; everything else as ride_updated. The
    car a ride was assigned to gets ride_assigned, and a car that lost the
    ride (reassign, undo) gets ride_updated.
    """
    from rides.serializers import RideSerializer

    extra = extra or {}
    ride_data = RideSerializer(ride).data
    payload = {
        "ride_id": ride.id,
        "action": action,
        "status": ride.status,
        "version": ride.version,
        "ride": ride_data,
        **extra,
    }

    if action == "created":
        return notify_event_group(ride.event_id, "ride_created", payload)

    sent = notify_event_group(ride.event_id, "ride_updated", payload)

    if ride.car_number:
        car_event = "ride_assigned" if action in ("assign", "reassign") else "ride_updated"
        notify_car_group(ride.event_id, ride.car_number, car_event, payload)

    previous_car = extra.get("previous_car_number")
    if previous_car and previous_car != ride.car_number:
        notify_car_group(ride.event_id, previous_car, "ride_updated", {
            **payload,
            "removed": True,
        })

    return sent

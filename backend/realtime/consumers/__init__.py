"""Realtime consumers for WebSocket communication."""

from .base import BaseConsumer
from .dispatch_consumer import DispatchConsumer
from .car_consumer import CarConsumer

__all__ = [
    "BaseConsumer",
    "DispatchConsumer",
    "CarConsumer",
]

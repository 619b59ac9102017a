"""External maps service adapter (distance matrix, directions, geocoding)."""

from .client import GoogleMapsClient, MapsError, MapsNotConfiguredError, get_maps_client

__all__ = [
    "GoogleMapsClient",
    "MapsError",
    "MapsNotConfiguredError",
    "get_maps_client",
]

"""
Google Maps web-service client.

Sole responsibility: talk to the Distance Matrix, Directions and Geocoding
endpoints over HTTP and return normalized outputs. It holds no dispatch
rules; callers decide what to do with durations.

Coordinates are passed around internally as (lat, lon) tuples.
"""

import logging
from typing import List, Tuple, Dict, Any, Optional

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

LatLon = Tuple[float, float]


class MapsError(Exception):
    """Raised when the maps service fails or returns an unusable response."""
    pass


class MapsNotConfiguredError(MapsError):
    """Raised when no API key is configured."""
    pass


class GoogleMapsClient:
    """
    Thin adapter over the Google Maps web services.

    - Formats coordinates as "lat,lng|lat,lng"
    - Applies the configured timeout to every request
    - Converts non-OK statuses into MapsError
    """

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 timeout: Optional[int] = None, session: Optional[requests.Session] = None):
        self.api_key = api_key if api_key is not None else settings.GOOGLE_MAPS_API_KEY
        self.base_url = (base_url or settings.GOOGLE_MAPS_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.MAPS_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    # ---------------------- Internal helpers ----------------------

    @staticmethod
    def format_coordinates(coords: List[LatLon]) -> str:
        return "|".join(f"{float(lat)},{float(lon)}" for lat, lon in coords)

    def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if not self.is_configured:
            raise MapsNotConfiguredError("GOOGLE_MAPS_API_KEY is not set")

        url = f"{self.base_url}/{path}/json"
        try:
            response = self.session.get(
                url,
                params={**params, "key": self.api_key},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise MapsError(f"Maps request to {path} failed: {e}") from e

        status = data.get("status")
        if status != "OK":
            raise MapsError(
                f"Maps {path} error: {status} {data.get('error_message', '')}".strip()
            )
        return data

    # ---------------------- Distance matrix (batch) ----------------------

    def distance_matrix(self, origins: List[LatLon], destinations: List[LatLon],
                        departure_time: str = "now") -> List[List[Optional[float]]]:
        """
        Driving durations in seconds for every origin/destination pair.

        Returns a matrix indexed [origin][destination]; unreachable pairs are None.
        Uses duration_in_traffic when the service provides it.
        """
        if not origins or not destinations:
            return []

        data = self._get("distancematrix", {
            "origins": self.format_coordinates(origins),
            "destinations": self.format_coordinates(destinations),
            "mode": "driving",
            "departure_time": departure_time,
        })

        matrix: List[List[Optional[float]]] = []
        for row in data.get("rows", []):
            durations = []
            for element in row.get("elements", []):
                if element.get("status") != "OK":
                    durations.append(None)
                    continue
                duration = element.get("duration_in_traffic") or element.get("duration") or {}
                durations.append(duration.get("value"))
            matrix.append(durations)

        if len(matrix) != len(origins):
            raise MapsError("Distance matrix returned an unexpected number of rows")
        return matrix

    # ---------------------- Directions ----------------------

    def directions(self, origin: LatLon, destination: LatLon) -> Dict[str, Any]:
        """
        First driving route leg between two points, with traffic.

        Returns:
            {
                "duration": int,              # seconds, free flow
                "duration_in_traffic": int,   # seconds, current traffic
                "distance_text": str,
                "distance_meters": int,
            }
        """
        data = self._get("directions", {
            "origin": self.format_coordinates([origin]),
            "destination": self.format_coordinates([destination]),
            "mode": "driving",
            "departure_time": "now",
            "traffic_model": "best_guess",
        })

        try:
            leg = data["routes"][0]["legs"][0]
        except (KeyError, IndexError) as e:
            raise MapsError("Directions response has no route") from e

        duration = leg["duration"]["value"]
        in_traffic = leg.get("duration_in_traffic", {}).get("value", duration)
        return {
            "duration": duration,
            "duration_in_traffic": in_traffic,
            "distance_text": leg.get("distance", {}).get("text", ""),
            "distance_meters": leg.get("distance", {}).get("value"),
        }

    # ---------------------- Geocoding ----------------------

    def geocode(self, address: str) -> Optional[LatLon]:
        """Best match coordinates for a free-text address, or None."""
        try:
            data = self._get("geocode", {"address": address})
        except MapsError as e:
            if "ZERO_RESULTS" in str(e):
                return None
            raise

        results = data.get("results") or []
        if not results:
            return None
        location = results[0]["geometry"]["location"]
        return (location["lat"], location["lng"])


def get_maps_client() -> GoogleMapsClient:
    return GoogleMapsClient()

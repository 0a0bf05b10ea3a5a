"""Position fallback, reverse geocoding and distance helpers."""

from __future__ import annotations

import json
import logging
import math
import time
from urllib import parse, request
from urllib.error import HTTPError, URLError

from libs.core.domain.entities import GPSCoordinates, LocationData

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6371e3
FALLBACK_LATITUDE = 20.5937
FALLBACK_LONGITUDE = 78.9629
DEFAULT_NOMINATIM_URL = "https://nominatim.openstreetmap.org/reverse"


def fallback_position() -> GPSCoordinates:
    return GPSCoordinates(
        latitude=FALLBACK_LATITUDE,
        longitude=FALLBACK_LONGITUDE,
        timestamp=time.time(),
    )


def haversine_distance(first: GPSCoordinates, second: GPSCoordinates) -> float:
    """Great-circle distance in meters."""
    phi1 = math.radians(first.latitude)
    phi2 = math.radians(second.latitude)
    d_phi = math.radians(second.latitude - first.latitude)
    d_lambda = math.radians(second.longitude - first.longitude)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


class LocationService:
    """Wraps client-reported fixes with fallback and reverse geocoding."""

    def __init__(
        self,
        nominatim_url: str = DEFAULT_NOMINATIM_URL,
        timeout_sec: float = 10.0,
        user_agent: str = "roadsense-sim/0.1",
    ) -> None:
        self._nominatim_url = nominatim_url
        self._timeout_sec = timeout_sec
        self._user_agent = user_agent
        self._last_known: GPSCoordinates | None = None

    @property
    def last_known_position(self) -> GPSCoordinates | None:
        return self._last_known

    def resolve_position(self, reported: GPSCoordinates | None) -> GPSCoordinates:
        if reported is None:
            logger.warning("No position reported, using fallback coordinates")
            return fallback_position()
        self._last_known = reported
        return reported

    def reverse_geocode(self, coordinates: GPSCoordinates) -> LocationData:
        query = parse.urlencode(
            {
                "format": "jsonv2",
                "lat": coordinates.latitude,
                "lon": coordinates.longitude,
                "zoom": 18,
                "addressdetails": 1,
            }
        )
        req = request.Request(
            url=f"{self._nominatim_url}?{query}",
            headers={"User-Agent": self._user_agent},
            method="GET",
        )
        try:
            with request.urlopen(req, timeout=self._timeout_sec) as response:
                data = json.loads(response.read().decode("utf-8"))
        except (HTTPError, URLError, OSError, ValueError) as error:
            logger.error("Reverse geocoding failed: %s", error)
            return LocationData(coordinates=coordinates)
        if not isinstance(data, dict):
            logger.error(
                "Unexpected reverse geocoding payload: %s", type(data).__name__
            )
            return LocationData(coordinates=coordinates)

        address = data.get("address") or {}
        if not isinstance(address, dict):
            address = {}
        return LocationData(
            coordinates=coordinates,
            address=data.get("display_name"),
            road_name=address.get("road") or address.get("highway"),
            city=address.get("city") or address.get("town") or address.get("village"),
            state=address.get("state"),
            country=address.get("country"),
        )

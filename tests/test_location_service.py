"""Location service and map provider tests."""

import io
import json
from urllib.error import URLError

import pytest

from libs.core.domain.entities import GeoPoint, GPSCoordinates
from libs.infra.geo import location_service as location_module
from libs.infra.geo.location_service import (
    FALLBACK_LATITUDE,
    FALLBACK_LONGITUDE,
    LocationService,
    haversine_distance,
)
from libs.infra.mapping.geojson_provider import GeoJsonMapProvider


def _coords(lat: float, lng: float) -> GPSCoordinates:
    return GPSCoordinates(latitude=lat, longitude=lng, timestamp=0.0)


def test_missing_position_uses_india_fallback() -> None:
    service = LocationService()

    position = service.resolve_position(None)

    assert (position.latitude, position.longitude) == (
        FALLBACK_LATITUDE,
        FALLBACK_LONGITUDE,
    )
    assert service.last_known_position is None


def test_reported_position_is_remembered() -> None:
    service = LocationService()
    reported = _coords(12.97, 77.59)

    assert service.resolve_position(reported) is reported
    assert service.last_known_position is reported


def test_haversine_distance_one_degree_of_latitude() -> None:
    distance = haversine_distance(_coords(0.0, 0.0), _coords(1.0, 0.0))

    assert distance == pytest.approx(111_195, rel=1e-3)


def test_reverse_geocode_parses_address(monkeypatch: pytest.MonkeyPatch) -> None:
    body = {
        "display_name": "MG Road, Bengaluru, Karnataka, India",
        "address": {
            "road": "MG Road",
            "city": "Bengaluru",
            "state": "Karnataka",
            "country": "India",
        },
    }
    monkeypatch.setattr(
        location_module.request,
        "urlopen",
        lambda req, timeout: io.BytesIO(json.dumps(body).encode("utf-8")),
    )

    location = LocationService().reverse_geocode(_coords(12.97, 77.59))

    assert location.road_name == "MG Road"
    assert location.city == "Bengaluru"
    assert location.country == "India"


def test_reverse_geocode_failure_keeps_coordinates(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def failing_urlopen(req, timeout):
        raise URLError("offline")

    monkeypatch.setattr(location_module.request, "urlopen", failing_urlopen)
    coords = _coords(12.97, 77.59)

    location = LocationService().reverse_geocode(coords)

    assert location.coordinates == coords
    assert location.address is None


def test_reverse_geocode_non_object_payload_keeps_coordinates(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(
        location_module.request, "urlopen", lambda req, timeout: io.BytesIO(b"[]")
    )
    coords = _coords(12.97, 77.59)

    location = LocationService().reverse_geocode(coords)

    assert location.coordinates == coords
    assert location.address is None
    assert location.city is None


def test_map_provider_layers() -> None:
    provider = GeoJsonMapProvider()
    provider.add_marker(GeoPoint(lat=1.0, lng=2.0), {"id": "a"})
    provider.add_heat_layer([(GeoPoint(lat=1.0, lng=2.0), 0.5)])
    loaded = provider.load_boundaries(
        {
            "type": "FeatureCollection",
            "features": [
                {"type": "Feature", "geometry": None, "properties": {"name": "KA"}}
            ],
        }
    )

    collection = provider.to_feature_collection()

    assert loaded == 1
    assert [f["properties"]["layer"] for f in collection["features"]] == [
        "boundary",
        "heat",
        "marker",
    ]
    assert collection["features"][2]["geometry"]["coordinates"] == [2.0, 1.0]


def test_map_provider_rejects_non_collection() -> None:
    with pytest.raises(ValueError):
        GeoJsonMapProvider().load_boundaries({"type": "Feature"})

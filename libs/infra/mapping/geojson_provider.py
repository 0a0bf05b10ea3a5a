from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Any

from libs.core.application.contracts import MapProvider
from libs.core.domain.entities import GeoPoint, Pothole

logger = logging.getLogger(__name__)

SEVERITY_WEIGHTS = {"low": 0.3, "medium": 0.6, "high": 1.0}


class GeoJsonMapProvider(MapProvider):
    """Map provider that renders layers into a GeoJSON FeatureCollection."""

    def __init__(self) -> None:
        self._markers: list[dict[str, Any]] = []
        self._heat: list[dict[str, Any]] = []
        self._boundaries: list[dict[str, Any]] = []

    def add_marker(self, point: GeoPoint, properties: dict[str, Any]) -> None:
        self._markers.append(_point_feature(point, {"layer": "marker", **properties}))

    def add_heat_layer(self, points: list[tuple[GeoPoint, float]]) -> None:
        self._heat = [
            _point_feature(point, {"layer": "heat", "weight": weight})
            for point, weight in points
        ]

    def load_boundaries(self, geojson: dict[str, Any]) -> int:
        if geojson.get("type") != "FeatureCollection":
            raise ValueError("Boundaries must be a FeatureCollection")
        features = geojson.get("features") or []
        self._boundaries = [
            {**feature, "properties": {**(feature.get("properties") or {}), "layer": "boundary"}}
            for feature in features
        ]
        logger.info("Loaded %d boundary features", len(self._boundaries))
        return len(self._boundaries)

    def to_feature_collection(self) -> dict[str, Any]:
        return {
            "type": "FeatureCollection",
            "features": [*self._boundaries, *self._heat, *self._markers],
        }


def render_potholes(
    potholes: tuple[Pothole, ...], provider: GeoJsonMapProvider
) -> dict[str, Any]:
    heat_points: list[tuple[GeoPoint, float]] = []
    for pothole in potholes:
        point = GeoPoint(lat=pothole.latitude, lng=pothole.longitude)
        provider.add_marker(
            point,
            {
                "id": pothole.id,
                "severity": pothole.severity,
                "status": pothole.status,
                "address": pothole.address,
                "upvotes": pothole.upvotes,
            },
        )
        if pothole.status != "resolved":
            heat_points.append((point, SEVERITY_WEIGHTS[pothole.severity]))
    provider.add_heat_layer(heat_points)
    return provider.to_feature_collection()


def _point_feature(point: GeoPoint, properties: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [point.lng, point.lat]},
        "properties": properties,
    }


@lru_cache(maxsize=4)
def read_boundaries(path: str) -> dict[str, Any]:
    """Read a boundary FeatureCollection (e.g. district outlines) from disk."""
    with open(path, encoding="utf-8") as handle:
        return json.load(handle)

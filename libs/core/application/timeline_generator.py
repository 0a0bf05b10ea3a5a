"""Simulated pothole detection timeline."""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from uuid import UUID

from libs.core.domain.entities import (
    SEVERITIES,
    SIZES,
    DetectionEvent,
    GeoPoint,
    PixelBox,
    PotholeSize,
    Severity,
)

logger = logging.getLogger(__name__)

DEMO_VIDEO_MARKER = "ForBiggerBlazes"
DEMO_DURATION_SEC = 30.0
UPLOAD_DURATION_SEC = 60.0
MIN_DETECTIONS = 5
MAX_DETECTIONS = 10
ASSUMED_FPS = 30

INDIA_CENTER = GeoPoint(lat=20.5937, lng=78.9629)

INDIAN_LOCATIONS = (
    "Connaught Place, Delhi",
    "MG Road, Bangalore",
    "Marine Drive, Mumbai",
    "Park Street, Kolkata",
    "Lal Darwaza, Hyderabad",
    "Anna Salai, Chennai",
    "FC Road, Pune",
    "Hazratganj, Lucknow",
    "Mall Road, Shimla",
    "MG Marg, Gangtok",
)

ROAD_TYPES = (
    "Asphalt",
    "Concrete",
    "Bitumen",
    "WBM (Water Bound Macadam)",
    "Gravel",
    "PMGSY Standard",
)

WEATHER_CONDITIONS = ("Clear", "Rainy", "Post-rain", "Humid", "Hot", "Monsoon")

DETECTION_ALGORITHMS = (
    ("YOLOv5", 0.4),
    ("Faster R-CNN", 0.2),
    ("EfficientDet", 0.1),
    ("SIFT", 0.1),
    ("PotholeNet", 0.2),
)

# (time, severity, size, location) for the canned demo asset.
DEMO_TABLE: tuple[tuple[float, Severity, PotholeSize, str], ...] = (
    (3.5, "low", "small", "MG Road, Bangalore"),
    (7.2, "medium", "medium", "Connaught Place, Delhi"),
    (11.5, "low", "small", "FC Road, Pune"),
    (15.0, "high", "large", "Anna Salai, Chennai"),
    (18.3, "medium", "medium", "Park Street, Kolkata"),
    (21.7, "high", "large", "Marine Drive, Mumbai"),
    (24.8, "medium", "small", "Lal Darwaza, Hyderabad"),
    (27.5, "low", "small", "Hazratganj, Lucknow"),
)


@dataclass(frozen=True)
class HighRiskLocation:
    name: str
    probability: float
    typical_severity: Severity


@dataclass(frozen=True)
class TimeWindow:
    """Fractional span of the video with its severity-bump probability."""

    start: float
    end: float
    probability: float


@dataclass(frozen=True)
class GeneratorWeights:
    """Tunable heuristics behind the severity bias."""

    time_windows: tuple[TimeWindow, ...] = (
        TimeWindow(0.3, 0.7, 0.7),
        TimeWindow(0.7, 0.9, 0.5),
    )
    default_time_probability: float = 0.3
    high_risk_locations: tuple[HighRiskLocation, ...] = field(
        default=(
            HighRiskLocation("MG Road, Bangalore", 0.8, "high"),
            HighRiskLocation("Anna Salai, Chennai", 0.75, "medium"),
            HighRiskLocation("Connaught Place, Delhi", 0.6, "medium"),
        )
    )

    def time_probability(self, time_sec: float, duration: float) -> float:
        for window in self.time_windows:
            if duration * window.start < time_sec < duration * window.end:
                return window.probability
        return self.default_time_probability

    def location_for(self, name: str) -> HighRiskLocation | None:
        for location in self.high_risk_locations:
            if location.name == name:
                return location
        return None


def is_demo_source(video_url: str) -> bool:
    return DEMO_VIDEO_MARKER in video_url


def nominal_duration(video_url: str) -> float:
    return DEMO_DURATION_SEC if is_demo_source(video_url) else UPLOAD_DURATION_SEC


class DetectionTimelineGenerator:
    """Spreads fake detections across a video with severity clustering."""

    def __init__(
        self,
        weights: GeneratorWeights | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._weights = weights or GeneratorWeights()
        self._rng = rng or random.Random()

    def generate_for_video(self, video_url: str) -> list[DetectionEvent]:
        if is_demo_source(video_url):
            return self.generate_demo()
        return self.generate(UPLOAD_DURATION_SEC)

    def generate(
        self, duration: float, count: int | None = None
    ) -> list[DetectionEvent]:
        if duration <= 0:
            return []
        if count is None:
            count = self._rng.randint(MIN_DETECTIONS, MAX_DETECTIONS)
        if count <= 0:
            return []

        width = duration / count
        events: list[DetectionEvent] = []
        for index in range(count):
            base_time = index * width
            time_sec = base_time + self._rng.uniform(0.0, width / 2)
            location_name = self._rng.choice(INDIAN_LOCATIONS)

            severity_index = min(
                2,
                self._rng.randint(0, 2)
                + self._severity_bias(location_name, time_sec, duration),
            )
            size_index = min(
                2, self._rng.randint(0, 2) + (1 if severity_index > 1 else 0)
            )
            events.append(
                self._build_event(
                    time_sec=time_sec,
                    severity=SEVERITIES[severity_index],
                    size=SIZES[size_index],
                    location_name=location_name,
                    confidence=0.7 + self._rng.random() * 0.3,
                    spread_deg=10.0,
                    distance=self._rng.randint(10, 109),
                )
            )

        events.sort(key=lambda item: item.time_in_video)
        logger.debug("Generated %d detections over %.1fs", len(events), duration)
        return events

    def generate_demo(self) -> list[DetectionEvent]:
        events = [
            self._build_event(
                time_sec=time_sec,
                severity=severity,
                size=size,
                location_name=location_name,
                confidence=0.75 + self._rng.random() * 0.2,
                spread_deg=5.0,
                distance=self._rng.randint(10, 89),
            )
            for time_sec, severity, size, location_name in DEMO_TABLE
        ]
        events.sort(key=lambda item: item.time_in_video)
        return events

    def _severity_bias(self, location_name: str, time_sec: float, duration: float) -> int:
        bias = 0
        high_risk = self._weights.location_for(location_name)
        if high_risk is not None and self._rng.random() < high_risk.probability:
            bias = SEVERITIES.index(high_risk.typical_severity)
        if self._rng.random() < self._weights.time_probability(time_sec, duration):
            bias += 1
        return bias

    def _pick_algorithm(self) -> str:
        roll = self._rng.random()
        cumulative = 0.0
        for name, weight in DETECTION_ALGORITHMS:
            cumulative += weight
            if roll <= cumulative:
                return name
        return DETECTION_ALGORITHMS[0][0]

    def _build_event(
        self,
        time_sec: float,
        severity: Severity,
        size: PotholeSize,
        location_name: str,
        confidence: float,
        spread_deg: float,
        distance: int,
    ) -> DetectionEvent:
        rng = self._rng
        return DetectionEvent(
            event_id=str(UUID(int=rng.getrandbits(128), version=4)),
            time_in_video=time_sec,
            confidence=confidence,
            size=size,
            severity=severity,
            location=GeoPoint(
                lat=INDIA_CENTER.lat + (rng.random() - 0.5) * spread_deg,
                lng=INDIA_CENTER.lng + (rng.random() - 0.5) * spread_deg,
            ),
            distance=distance,
            location_name=location_name,
            frame_number=math.floor(time_sec * ASSUMED_FPS),
            pixel_box=PixelBox(
                x1=rng.randint(100, 399),
                y1=rng.randint(100, 299),
                x2=rng.randint(400, 499),
                y2=rng.randint(300, 399),
            ),
            surface_damage_estimate=rng.randint(10, 39),
            depth_estimate=rng.randint(1, 10),
            detection_algorithm=self._pick_algorithm(),
            impact_force=rng.randint(500, 1499),
            road_type=rng.choice(ROAD_TYPES),
            weather_conditions=rng.choice(WEATHER_CONDITIONS),
            time_to_repair=rng.randint(1, 30),
            vehicle_risk_level=rng.randint(1, 10),
        )

from dataclasses import dataclass, field
from typing import Literal, Optional

Severity = Literal["low", "medium", "high"]
PotholeSize = Literal["small", "medium", "large"]
PotholeStatus = Literal["reported", "confirmed", "in_progress", "resolved"]

SEVERITIES: tuple[Severity, ...] = ("low", "medium", "high")
SIZES: tuple[PotholeSize, ...] = ("small", "medium", "large")


@dataclass(frozen=True)
class GeoPoint:
    """Latitude/longitude pair in decimal degrees."""

    lat: float
    lng: float


@dataclass(frozen=True)
class PixelBox:
    x1: int
    y1: int
    x2: int
    y2: int


@dataclass(frozen=True)
class DetectionEvent:
    """Simulated pothole detection placed on a video timeline."""

    event_id: str
    time_in_video: float
    confidence: float
    size: PotholeSize
    severity: Severity
    location: GeoPoint
    distance: int
    location_name: Optional[str]
    frame_number: int
    pixel_box: PixelBox
    surface_damage_estimate: int
    depth_estimate: int
    detection_algorithm: str
    impact_force: int
    road_type: str
    weather_conditions: str
    time_to_repair: int
    vehicle_risk_level: int


@dataclass
class ProcessingStats:
    """Cosmetic counters shown while a video is being processed."""

    frames_processed: int = 0
    frames_per_second: float = 0.0
    detection_accuracy: float = 0.0
    memory_usage: float = 0.0
    gpu_utilization: float = 0.0
    model_name: str = ""
    detection_events: int = 0
    status: str = "Idle"


@dataclass
class AnalysisSession:
    """One "process video" action and its playback lifecycle."""

    session_id: str
    video_url: str
    status: str
    created_at: str
    duration_sec: float
    is_demo: bool
    sensitivity_level: int = 5
    detection_threshold: float = 0.7


@dataclass(frozen=True)
class VoiceProfile:
    rate: float
    pitch: float
    volume: float


@dataclass(frozen=True)
class Notification:
    """Transient visual notification with auto-dismiss."""

    level: str
    title: str
    description: str
    duration_sec: float


@dataclass(frozen=True)
class AlertMessage:
    """Alert synthesized from a matched detection."""

    event_id: str
    severity: Severity
    speech_text: str
    voice: VoiceProfile
    notification: Notification


@dataclass(frozen=True)
class Announcement:
    """Utterance queued for the audio announcement subsystem."""

    text: str
    voice: VoiceProfile
    queued_at: str


@dataclass(frozen=True)
class Pothole:
    """Map-listed pothole report."""

    id: str
    latitude: float
    longitude: float
    address: str
    severity: Severity
    status: PotholeStatus
    reported_at: str
    updated_at: Optional[str]
    description: str
    image_url: str
    reporter: str
    upvotes: int


@dataclass(frozen=True)
class GPSCoordinates:
    latitude: float
    longitude: float
    timestamp: float
    accuracy: Optional[float] = None


@dataclass
class LocationData:
    """Coordinates plus whatever reverse geocoding could resolve."""

    coordinates: GPSCoordinates
    address: Optional[str] = None
    road_name: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None


@dataclass
class ReportMetadata:
    device_info: str
    app_version: str
    model_used: str


@dataclass
class PotholeReport:
    """Report built from a detection and its resolved location."""

    report_id: str
    timestamp: str
    detection: DetectionEvent
    location: LocationData
    report_type: str
    status: str
    metadata: ReportMetadata = field(
        default_factory=lambda: ReportMetadata("server", "1.0.0", "YOLOv8")
    )

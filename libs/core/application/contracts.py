from typing import Any, Protocol, TypedDict

from libs.core.domain.entities import (
    AnalysisSession,
    DetectionEvent,
    GeoPoint,
    Notification,
    Pothole,
    Severity,
    VoiceProfile,
)


class PotholeForm(TypedDict):
    """Payload for a manually submitted pothole report."""

    latitude: float
    longitude: float
    address: str
    severity: Severity
    description: str
    reporter: str


class SessionRepository(Protocol):
    """Analysis session persistence contract."""

    def create(self, session: AnalysisSession) -> None: ...

    def get(self, session_id: str) -> AnalysisSession | None: ...

    def update_status(
        self, session_id: str, status: str
    ) -> AnalysisSession | None: ...


class DetectionRepository(Protocol):
    """Per-session detection timeline storage contract."""

    def replace(self, session_id: str, events: list[DetectionEvent]) -> None: ...

    def list_by_session(self, session_id: str) -> list[DetectionEvent]: ...


class PotholeRepository(Protocol):
    """Pothole map store with explicit mutation entry points."""

    def snapshot(self) -> tuple[Pothole, ...]: ...

    def add_report(self, form: PotholeForm) -> tuple[Pothole, ...]: ...

    def increment_upvote(self, pothole_id: str) -> tuple[Pothole, ...]: ...


class SpeechOutput(Protocol):
    """Audio announcement subsystem."""

    def speak(self, session_id: str, text: str, voice: VoiceProfile) -> bool: ...

    def cancel(self, session_id: str) -> None: ...


class Notifier(Protocol):
    """Transient visual notification sink."""

    def notify(self, session_id: str, notification: Notification) -> None: ...


class MapProvider(Protocol):
    """Rendering target for map layers."""

    def add_marker(self, point: GeoPoint, properties: dict[str, Any]) -> None: ...

    def add_heat_layer(self, points: list[tuple[GeoPoint, float]]) -> None: ...

    def load_boundaries(self, geojson: dict[str, Any]) -> int: ...

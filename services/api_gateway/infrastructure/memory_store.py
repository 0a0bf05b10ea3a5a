"""In-memory storage for sessions, potholes and alert sinks (MVP)."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from libs.core.application.contracts import PotholeForm
from libs.core.domain.entities import (
    AnalysisSession,
    Announcement,
    DetectionEvent,
    Notification,
    Pothole,
    VoiceProfile,
)

logger = logging.getLogger(__name__)

SEED_POTHOLES: tuple[Pothole, ...] = (
    Pothole(
        id="1",
        latitude=37.7749,
        longitude=-122.4194,
        address="123 Market St, San Francisco, CA",
        severity="high",
        status="reported",
        reported_at="2025-04-05T10:30:00Z",
        updated_at=None,
        description="Large pothole spanning half the lane, about 1ft deep.",
        image_url="/placeholder.svg",
        reporter="john.doe@example.com",
        upvotes=12,
    ),
    Pothole(
        id="2",
        latitude=37.7848,
        longitude=-122.4294,
        address="456 Mission St, San Francisco, CA",
        severity="medium",
        status="confirmed",
        reported_at="2025-04-04T14:20:00Z",
        updated_at="2025-04-05T09:10:00Z",
        description="Medium sized pothole at intersection, causing traffic slowdowns.",
        image_url="/placeholder.svg",
        reporter="jane.smith@example.com",
        upvotes=8,
    ),
    Pothole(
        id="3",
        latitude=37.7947,
        longitude=-122.4094,
        address="789 Howard St, San Francisco, CA",
        severity="low",
        status="in_progress",
        reported_at="2025-04-03T09:15:00Z",
        updated_at="2025-04-06T11:45:00Z",
        description="Small crack developing into a pothole, near the bus stop.",
        image_url="/placeholder.svg",
        reporter="mark.wilson@example.com",
        upvotes=5,
    ),
    Pothole(
        id="4",
        latitude=37.7849,
        longitude=-122.4194,
        address="101 California St, San Francisco, CA",
        severity="high",
        status="in_progress",
        reported_at="2025-04-02T16:40:00Z",
        updated_at="2025-04-04T08:30:00Z",
        description="Deep pothole causing damage to vehicles, urgent repair needed.",
        image_url="/placeholder.svg",
        reporter="susan.jones@example.com",
        upvotes=24,
    ),
    Pothole(
        id="5",
        latitude=37.7749,
        longitude=-122.4294,
        address="222 Folsom St, San Francisco, CA",
        severity="medium",
        status="resolved",
        reported_at="2025-03-28T13:20:00Z",
        updated_at="2025-04-05T15:10:00Z",
        description="Pothole repair completed, road surface restored.",
        image_url="/placeholder.svg",
        reporter="alex.brown@example.com",
        upvotes=3,
    ),
    Pothole(
        id="6",
        latitude=37.7649,
        longitude=-122.4194,
        address="333 Bryant St, San Francisco, CA",
        severity="low",
        status="reported",
        reported_at="2025-04-06T10:10:00Z",
        updated_at=None,
        description="Small pothole forming near the crosswalk.",
        image_url="/placeholder.svg",
        reporter="lisa.miller@example.com",
        upvotes=2,
    ),
)


@dataclass
class InMemoryDatabase:
    sessions: dict[str, AnalysisSession] = field(default_factory=dict)
    detections: dict[str, list[DetectionEvent]] = field(default_factory=dict)

    def clear(self) -> None:
        self.sessions.clear()
        self.detections.clear()


class InMemorySessionRepository:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    def create(self, session: AnalysisSession) -> None:
        self._db.sessions[session.session_id] = session
        self._db.detections[session.session_id] = []

    def get(self, session_id: str) -> AnalysisSession | None:
        return self._db.sessions.get(session_id)

    def update_status(self, session_id: str, status: str) -> AnalysisSession | None:
        session = self._db.sessions.get(session_id)
        if session is None:
            return None
        session.status = status
        return session


class InMemoryDetectionRepository:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    def replace(self, session_id: str, events: list[DetectionEvent]) -> None:
        self._db.detections[session_id] = sorted(
            events, key=lambda item: item.time_in_video
        )

    def list_by_session(self, session_id: str) -> list[DetectionEvent]:
        return list(self._db.detections.get(session_id, []))


class InMemoryPotholeStore:
    """Pothole list mutated only through ``add_report`` and ``increment_upvote``."""

    def __init__(self, seed: tuple[Pothole, ...] = SEED_POTHOLES) -> None:
        self._seed = seed
        self._potholes: tuple[Pothole, ...] = seed
        self._next_id = len(seed) + 1
        self._lock = threading.Lock()

    def snapshot(self) -> tuple[Pothole, ...]:
        return self._potholes

    def add_report(self, form: PotholeForm) -> tuple[Pothole, ...]:
        with self._lock:
            pothole = Pothole(
                id=str(self._next_id),
                latitude=form["latitude"],
                longitude=form["longitude"],
                address=form["address"],
                severity=form["severity"],
                status="reported",
                reported_at=_utc_now_iso(),
                updated_at=None,
                description=form["description"],
                image_url="/placeholder.svg",
                reporter=form["reporter"],
                upvotes=0,
            )
            self._next_id += 1
            self._potholes = (*self._potholes, pothole)
            return self._potholes

    def increment_upvote(self, pothole_id: str) -> tuple[Pothole, ...]:
        with self._lock:
            if not any(item.id == pothole_id for item in self._potholes):
                raise KeyError(pothole_id)
            self._potholes = tuple(
                replace(item, upvotes=item.upvotes + 1, updated_at=_utc_now_iso())
                if item.id == pothole_id
                else item
                for item in self._potholes
            )
            return self._potholes

    def reset(self) -> None:
        with self._lock:
            self._potholes = self._seed
            self._next_id = len(self._seed) + 1


class AnnouncementQueue:
    """Pending utterances per session, drained by the playback client."""

    def __init__(self, enabled: bool = True) -> None:
        self._enabled = enabled
        self._pending: dict[str, list[Announcement]] = {}
        self._lock = threading.Lock()

    def speak(self, session_id: str, text: str, voice: VoiceProfile) -> bool:
        if not self._enabled:
            logger.warning("Text-to-speech is not available, alert not spoken")
            return False
        with self._lock:
            # a new alert interrupts whatever is still queued
            self._pending[session_id] = [
                Announcement(text=text, voice=voice, queued_at=_utc_now_iso())
            ]
        return True

    def cancel(self, session_id: str) -> None:
        with self._lock:
            self._pending.pop(session_id, None)

    def drain(self, session_id: str) -> list[Announcement]:
        with self._lock:
            return self._pending.pop(session_id, [])

    def clear(self) -> None:
        with self._lock:
            self._pending.clear()


@dataclass(frozen=True)
class _PostedNotification:
    notification: Notification
    expires_at: float


class NotificationFeed:
    """Visual notifications that expire after their auto-dismiss duration."""

    def __init__(self, clock=time.monotonic) -> None:
        self._clock = clock
        self._posted: dict[str, list[_PostedNotification]] = {}
        self._lock = threading.Lock()

    def notify(self, session_id: str, notification: Notification) -> None:
        with self._lock:
            self._posted.setdefault(session_id, []).append(
                _PostedNotification(
                    notification=notification,
                    expires_at=self._clock() + notification.duration_sec,
                )
            )

    def active(self, session_id: str) -> list[Notification]:
        now = self._clock()
        with self._lock:
            alive = [
                item for item in self._posted.get(session_id, []) if item.expires_at > now
            ]
            self._posted[session_id] = alive
            return [item.notification for item in alive]

    def clear(self) -> None:
        with self._lock:
            self._posted.clear()


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

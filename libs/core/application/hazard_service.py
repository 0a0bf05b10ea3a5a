from __future__ import annotations

import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import uuid4

from libs.core.application.alert_dispatcher import AlertDispatcher
from libs.core.application.contracts import DetectionRepository, SessionRepository
from libs.core.application.playback_matcher import AlertHistory, PlaybackClockMatcher
from libs.core.application.timeline_generator import (
    DetectionTimelineGenerator,
    is_demo_source,
    nominal_duration,
)
from libs.core.domain.entities import AlertMessage, AnalysisSession, DetectionEvent

logger = logging.getLogger(__name__)

_PLAYABLE_STATUSES = {"processed", "playing", "stopped"}


class SessionNotFoundError(ValueError):
    """Raised when a session id is unknown."""


class SessionStateError(ValueError):
    """Raised when a session cannot perform the requested transition."""


@dataclass
class _PlaybackState:
    history: AlertHistory = field(default_factory=AlertHistory)
    last_time_sec: float | None = None


class RoadHazardService:
    """Application service for video analysis and playback alerts."""

    def __init__(
        self,
        session_repository: SessionRepository,
        detection_repository: DetectionRepository,
        generator: DetectionTimelineGenerator,
        matcher: PlaybackClockMatcher,
        dispatcher: AlertDispatcher,
    ) -> None:
        self._sessions = session_repository
        self._detections = detection_repository
        self._generator = generator
        self._matcher = matcher
        self._dispatcher = dispatcher
        self._playback: dict[str, _PlaybackState] = {}
        self._lock = threading.Lock()

    def create_session(
        self,
        video_url: str,
        sensitivity_level: int = 5,
        detection_threshold: float = 0.7,
    ) -> AnalysisSession:
        session = AnalysisSession(
            session_id=str(uuid4()),
            video_url=video_url,
            status="created",
            created_at=_utc_now_iso(),
            duration_sec=nominal_duration(video_url),
            is_demo=is_demo_source(video_url),
            sensitivity_level=sensitivity_level,
            detection_threshold=detection_threshold,
        )
        self._sessions.create(session)
        logger.info("Session %s created for %s", session.session_id, video_url)
        return session

    def get_session(self, session_id: str) -> AnalysisSession | None:
        return self._sessions.get(session_id)

    def begin_processing(self, session_id: str) -> AnalysisSession:
        with self._lock:
            session = self._require_session(session_id)
            if session.status in {"processing", "playing"}:
                raise SessionStateError(f"Session is {session.status}")
            session = self._set_status(session_id, "processing")
        self._stop_playback_state(session_id)
        return session

    def complete_processing(self, session_id: str) -> list[DetectionEvent]:
        session = self._require_session(session_id)
        events = self._generator.generate_for_video(session.video_url)
        with self._lock:
            session = self._require_session(session_id)
            if session.status != "processing":
                raise SessionStateError(f"Session is {session.status}")
            self._detections.replace(session_id, events)
            self._set_status(session_id, "processed")
        logger.info("Detected %d potholes in session %s", len(events), session_id)
        return events

    def cancel_processing(self, session_id: str) -> AnalysisSession:
        with self._lock:
            session = self._require_session(session_id)
            if session.status != "processing":
                raise SessionStateError("Session is not processing")
            session = self._set_status(session_id, "cancelled")
        logger.info("Processing cancelled for session %s", session_id)
        return session

    def abandon_processing(self, session_id: str, status: str) -> None:
        """Put a session whose runner never started back into ``status``."""
        with self._lock:
            session = self._require_session(session_id)
            if session.status != "processing":
                return
            self._set_status(session_id, status)
        logger.warning("Processing for session %s abandoned", session_id)

    def process_video(self, session_id: str) -> list[DetectionEvent]:
        self.begin_processing(session_id)
        return self.complete_processing(session_id)

    def list_detections(self, session_id: str) -> list[DetectionEvent]:
        self._require_session(session_id)
        return self._detections.list_by_session(session_id)

    def start_playback(self, session_id: str) -> AnalysisSession:
        session = self._require_session(session_id)
        if session.status not in _PLAYABLE_STATUSES:
            raise SessionStateError("Video has not been processed")
        with self._lock:
            self._playback[session_id] = _PlaybackState()
        self._dispatcher.cancel(session_id)
        return self._set_status(session_id, "playing")

    def poll_playback(
        self, session_id: str, current_time: float
    ) -> list[AlertMessage]:
        session = self._require_session(session_id)
        if session.status != "playing":
            raise SessionStateError("Playback is not running")
        events = self._detections.list_by_session(session_id)

        with self._lock:
            state = self._playback.setdefault(session_id, _PlaybackState())
            state.last_time_sec = current_time
            fired = self._matcher.match(current_time, events, state.history)

        return [self._dispatcher.dispatch(session_id, event) for event in fired]

    def stop_playback(self, session_id: str) -> AnalysisSession:
        session = self._require_session(session_id)
        if session.status != "playing":
            raise SessionStateError("Playback is not running")
        self._stop_playback_state(session_id)
        return self._set_status(session_id, "stopped")

    def list_alert_history(self, session_id: str) -> list[DetectionEvent]:
        self._require_session(session_id)
        with self._lock:
            state = self._playback.get(session_id)
            return list(state.history) if state is not None else []

    def reset_runtime_state(self) -> None:
        with self._lock:
            self._playback.clear()

    def get_session_report(self, session_id: str) -> dict[str, object]:
        session = self._require_session(session_id)
        events = self._detections.list_by_session(session_id)
        alerted = self.list_alert_history(session_id)
        with self._lock:
            state = self._playback.get(session_id)
            last_time = state.last_time_sec if state is not None else None

        by_severity = Counter(event.severity for event in events)
        mean_confidence = (
            sum(event.confidence for event in events) / len(events) if events else 0.0
        )
        return {
            "session_id": session_id,
            "status": session.status,
            "duration_sec": session.duration_sec,
            "detections_total": len(events),
            "detections_by_severity": {
                severity: by_severity.get(severity, 0)
                for severity in ("low", "medium", "high")
            },
            "alerts_fired": len(alerted),
            "mean_confidence": round(mean_confidence, 4),
            "last_playback_time_sec": last_time,
            "generated_at": _utc_now_iso(),
        }

    def _stop_playback_state(self, session_id: str) -> None:
        with self._lock:
            state = self._playback.get(session_id)
            if state is not None:
                state.history.clear()
        self._dispatcher.cancel(session_id)

    def _require_session(self, session_id: str) -> AnalysisSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError("Session not found")
        return session

    def _set_status(self, session_id: str, status: str) -> AnalysisSession:
        session = self._sessions.update_status(session_id=session_id, status=status)
        if session is None:
            raise SessionNotFoundError("Session not found")
        return session


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

"""Turns matched detections into spoken and visual alerts."""

from __future__ import annotations

import logging

from libs.core.application.contracts import Notifier, SpeechOutput
from libs.core.domain.entities import (
    AlertMessage,
    DetectionEvent,
    Notification,
    Severity,
    VoiceProfile,
)

logger = logging.getLogger(__name__)

NOTIFICATION_DURATION_SEC = 5.0

_SPEECH_TEMPLATES: dict[Severity, str] = {
    "high": "Critical pothole ahead! {distance} meters. Slow down immediately!",
    "medium": "Moderate pothole detected {distance} meters ahead. Prepare to slow down.",
    "low": "Minor road damage {distance} meters ahead. Proceed with caution.",
}

_TITLES: dict[Severity, str] = {
    "high": "Critical Pothole Ahead!",
    "medium": "Moderate Pothole Ahead",
    "low": "Minor Road Damage Ahead",
}

_ADVICE: dict[Severity, str] = {
    "high": "Immediate action required!",
    "medium": "Prepare to slow down.",
    "low": "Monitor road conditions.",
}

_LEVELS: dict[Severity, str] = {"high": "error", "medium": "warning", "low": "info"}


def voice_profile_for(severity: Severity) -> VoiceProfile:
    if severity == "high":
        return VoiceProfile(rate=1.2, pitch=1.2, volume=1.0)
    return VoiceProfile(rate=1.0, pitch=1.0, volume=0.8)


def compose_alert(event: DetectionEvent) -> AlertMessage:
    severity = event.severity
    description = f"{event.distance}m ahead, {event.size} size. {_ADVICE[severity]}"
    if event.location_name:
        description = f"{event.location_name}: {description}"
    return AlertMessage(
        event_id=event.event_id,
        severity=severity,
        speech_text=_SPEECH_TEMPLATES[severity].format(distance=event.distance),
        voice=voice_profile_for(severity),
        notification=Notification(
            level=_LEVELS[severity],
            title=_TITLES[severity],
            description=description,
            duration_sec=NOTIFICATION_DURATION_SEC,
        ),
    )


class AlertDispatcher:
    """Fire-and-forget fan-out to speech and notification sinks."""

    def __init__(self, speech: SpeechOutput, notifier: Notifier) -> None:
        self._speech = speech
        self._notifier = notifier

    def dispatch(self, session_id: str, event: DetectionEvent) -> AlertMessage:
        message = compose_alert(event)
        spoken = self._speech.speak(
            session_id=session_id,
            text=message.speech_text,
            voice=message.voice,
        )
        if not spoken:
            logger.debug("Speech skipped for event %s", event.event_id)
        self._notifier.notify(session_id=session_id, notification=message.notification)
        return message

    def cancel(self, session_id: str) -> None:
        self._speech.cancel(session_id)

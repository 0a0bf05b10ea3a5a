from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from libs.core.domain.entities import DetectionEvent

logger = logging.getLogger(__name__)

MATCH_WINDOW_SEC = 0.5


class AlertHistory:
    """Detections already surfaced during the current playback session."""

    def __init__(self) -> None:
        self._events: list[DetectionEvent] = []
        self._seen_ids: set[str] = set()

    def record(self, event: DetectionEvent) -> bool:
        if event.event_id in self._seen_ids:
            return False
        self._events.append(event)
        self._seen_ids.add(event.event_id)
        return True

    def contains(self, event: DetectionEvent) -> bool:
        return event.event_id in self._seen_ids

    def clear(self) -> None:
        self._events.clear()
        self._seen_ids.clear()

    def __iter__(self) -> Iterator[DetectionEvent]:
        return iter(list(self._events))

    def __len__(self) -> int:
        return len(self._events)


class PlaybackClockMatcher:
    """Matches the playback clock against a detection timeline."""

    def __init__(self, window_sec: float = MATCH_WINDOW_SEC) -> None:
        self._window_sec = window_sec

    def match(
        self,
        current_time: float,
        events: Iterable[DetectionEvent],
        history: AlertHistory,
    ) -> list[DetectionEvent]:
        """Return events near ``current_time`` and register them in ``history``."""
        fired: list[DetectionEvent] = []
        for event in events:
            if abs(event.time_in_video - current_time) >= self._window_sec:
                continue
            if not history.record(event):
                continue
            logger.info(
                "Detection at %.2fs - %s pothole (%.1f%% via %s)",
                current_time,
                event.severity,
                event.confidence * 100,
                event.detection_algorithm,
            )
            fired.append(event)
        return fired

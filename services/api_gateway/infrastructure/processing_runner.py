"""Background processing runner used by UI-driven video analysis."""

from __future__ import annotations

import logging
import random
import threading
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from uuid import uuid4

from libs.core.application.processing import (
    format_console_line,
    iter_processing_progress,
)
from libs.core.domain.entities import ProcessingStats

logger = logging.getLogger(__name__)

DEFAULT_TICK_SEC = 0.2
CONSOLE_HISTORY = 50


@dataclass
class ProcessingState:
    """Current state of a simulated processing run."""

    session_id: str
    running: bool
    progress: float
    run_id: str = ""
    stats: ProcessingStats = field(default_factory=ProcessingStats)
    log: list[str] = field(default_factory=list)
    cancelled: bool = False
    error: str | None = None


class _Registry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._states: dict[str, ProcessingState] = {}
        self._cancel_events: dict[str, threading.Event] = {}

    def get(self, session_id: str) -> ProcessingState | None:
        with self._lock:
            state = self._states.get(session_id)
            if state is None:
                return None
            return _copy_state(state)

    def begin(self, session_id: str) -> tuple[ProcessingState, threading.Event]:
        with self._lock:
            current = self._states.get(session_id)
            previous_event = self._cancel_events.get(session_id)
            cancelling = previous_event is not None and previous_event.is_set()
            if current is not None and current.running and not cancelling:
                raise ValueError("Processing already running for session")
            state = ProcessingState(
                session_id=session_id,
                running=True,
                progress=0.0,
                run_id=uuid4().hex,
            )
            event = threading.Event()
            self._states[session_id] = state
            self._cancel_events[session_id] = event
            return _copy_state(state), event

    def record_tick(
        self,
        session_id: str,
        run_id: str,
        progress: float,
        stats: ProcessingStats,
        line: str,
    ) -> bool:
        with self._lock:
            state = self._current_run(session_id, run_id)
            if state is None:
                return False
            state.progress = progress
            state.stats = stats
            state.log.append(line)
            del state.log[:-CONSOLE_HISTORY]
            return True

    def finish(
        self,
        session_id: str,
        run_id: str,
        cancelled: bool,
        error: str | None = None,
    ) -> None:
        with self._lock:
            state = self._current_run(session_id, run_id)
            if state is None:
                return
            state.running = False
            state.cancelled = cancelled
            state.error = error
            if not cancelled and error is None:
                state.stats.status = "Complete"

    def cancel_event(self, session_id: str) -> threading.Event | None:
        with self._lock:
            return self._cancel_events.get(session_id)

    def clear(self) -> None:
        with self._lock:
            for event in self._cancel_events.values():
                event.set()
            self._cancel_events.clear()
            self._states.clear()

    def _current_run(self, session_id: str, run_id: str) -> ProcessingState | None:
        state = self._states.get(session_id)
        if state is None or state.run_id != run_id:
            return None
        return state


_registry = _Registry()


def get_processing_state(session_id: str) -> ProcessingState | None:
    return _registry.get(session_id)


def start_processing(
    session_id: str,
    on_complete: Callable[[str], object],
    tick_sec: float = DEFAULT_TICK_SEC,
    rng: random.Random | None = None,
) -> ProcessingState:
    if tick_sec < 0:
        raise ValueError("tick_sec must be non-negative")

    state, cancel_event = _registry.begin(session_id)
    thread = threading.Thread(
        target=_run_processing,
        args=(session_id, state.run_id, on_complete, tick_sec, rng, cancel_event),
        daemon=True,
    )
    thread.start()
    logger.info("Processing run %s started for session %s", state.run_id, session_id)
    return state


def cancel_processing(session_id: str) -> bool:
    event = _registry.cancel_event(session_id)
    if event is None:
        return False
    event.set()
    return True


def reset_runner_state() -> None:
    _registry.clear()


def _run_processing(
    session_id: str,
    run_id: str,
    on_complete: Callable[[str], object],
    tick_sec: float,
    rng: random.Random | None,
    cancel_event: threading.Event,
) -> None:
    rng = rng or random.Random()
    try:
        for progress, stats in iter_processing_progress(rng):
            # wait() doubles as the tick sleep and the cancellation check
            if cancel_event.wait(tick_sec):
                _registry.finish(session_id, run_id, cancelled=True)
                logger.info("Processing cancelled for session %s", session_id)
                return
            line = format_console_line(progress, rng)
            if not _registry.record_tick(session_id, run_id, progress, stats, line):
                return

        if cancel_event.is_set():
            _registry.finish(session_id, run_id, cancelled=True)
            return
        on_complete(session_id)
        _registry.finish(session_id, run_id, cancelled=False)
        logger.info("Processing complete for session %s", session_id)
    except ValueError as error:
        if cancel_event.is_set():
            _registry.finish(session_id, run_id, cancelled=True)
            return
        logger.error("Processing failed for session %s: %s", session_id, error)
        _registry.finish(session_id, run_id, cancelled=False, error=str(error))


def _copy_state(state: ProcessingState) -> ProcessingState:
    data = asdict(state)
    data["stats"] = ProcessingStats(**data["stats"])
    return ProcessingState(**data)

import logging
import threading
import time
from dataclasses import asdict
from typing import Literal

from fastapi import APIRouter, HTTPException
from fastapi.responses import HTMLResponse, PlainTextResponse, Response, StreamingResponse
from pydantic import BaseModel, Field

from libs.core.application.hazard_service import (
    SessionNotFoundError,
    SessionStateError,
)
from libs.core.application.reporting import (
    detection_to_dict,
    export_detections,
)
from libs.core.domain.entities import (
    AlertMessage,
    AnalysisSession,
    GPSCoordinates,
    LocationData,
    PotholeReport,
)
from libs.infra.cerebras.chat_client import ChatCompletionError
from libs.infra.mapping.geojson_provider import (
    GeoJsonMapProvider,
    read_boundaries,
    render_potholes,
)
from services.api_gateway.dependencies import (
    announcements,
    chat_client,
    get_hazard_service,
    location_service,
    notifications,
    pothole_store,
    reporting_service,
    settings,
)
from services.api_gateway.infrastructure.processing_runner import (
    cancel_processing,
    get_processing_state,
    start_processing,
)
from services.api_gateway.presentation.http.ui_page import build_ui_html

logger = logging.getLogger(__name__)

router = APIRouter()

_EXPORT_MEDIA_TYPES = {
    "csv": "text/csv",
    "json": "application/json",
    "text": "text/plain",
}


class SessionCreateRequest(BaseModel):
    video_url: str = Field(min_length=1)
    sensitivity_level: int = Field(default=5, ge=1, le=10)
    detection_threshold: float = Field(default=0.7, ge=0.0, le=1.0)


class ProcessRequest(BaseModel):
    background: bool = False


class PlaybackPollRequest(BaseModel):
    current_time: float = Field(ge=0.0)


class PotholeCreateRequest(BaseModel):
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    address: str
    severity: Literal["low", "medium", "high"]
    description: str = ""
    reporter: str = "anonymous"


class PositionRequest(BaseModel):
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    accuracy: float | None = Field(default=None, ge=0.0)


class ReportCreateRequest(BaseModel):
    session_id: str
    event_id: str
    report_type: Literal["automatic", "manual"] = "automatic"
    position: PositionRequest | None = None
    reverse_geocode: bool = False


class ChatMessageRequest(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    messages: list[ChatMessageRequest] = Field(min_length=1)


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/", response_class=HTMLResponse)
def ui_index() -> str:
    return build_ui_html()


@router.get("/favicon.ico")
def favicon() -> Response:
    return Response(status_code=204)


@router.get("/ready")
def ready() -> dict[str, str]:
    return {"status": "ready"}


@router.get("/version")
def version() -> dict[str, str]:
    return {"version": "0.1.0"}


@router.post("/v1/sessions")
def create_session(payload: SessionCreateRequest) -> dict[str, object]:
    service = get_hazard_service()
    session = service.create_session(
        video_url=payload.video_url,
        sensitivity_level=payload.sensitivity_level,
        detection_threshold=payload.detection_threshold,
    )
    return _session_to_dict(session)


@router.get("/v1/sessions/{session_id}")
def get_session(session_id: str) -> dict[str, object]:
    session = get_hazard_service().get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return _session_to_dict(session)


@router.post("/v1/sessions/{session_id}/process")
def process_session(session_id: str, payload: ProcessRequest) -> dict[str, object]:
    service = get_hazard_service()
    try:
        if not payload.background:
            events = service.process_video(session_id)
            return {
                "session_id": session_id,
                "status": "processed",
                "detections": [detection_to_dict(event) for event in events],
            }
        existing = service.get_session(session_id)
        previous_status = existing.status if existing is not None else "created"
        session = service.begin_processing(session_id)
        try:
            state = start_processing(
                session_id,
                on_complete=service.complete_processing,
                tick_sec=settings.processing_tick_sec,
            )
        except ValueError:
            service.abandon_processing(session_id, previous_status)
            raise
    except SessionNotFoundError as error:
        raise HTTPException(status_code=404, detail=str(error)) from error
    except ValueError as error:
        raise HTTPException(status_code=409, detail=str(error)) from error

    return {
        "session_id": session_id,
        "status": session.status,
        "processing": {"running": state.running, "progress": state.progress},
    }


@router.get("/v1/sessions/{session_id}/processing")
def get_processing_status(session_id: str) -> dict[str, object]:
    if get_hazard_service().get_session(session_id) is None:
        raise HTTPException(status_code=404, detail="Session not found")

    state = get_processing_state(session_id)
    if state is None:
        return {
            "session_id": session_id,
            "running": False,
            "progress": 0.0,
            "cancelled": False,
            "error": None,
            "stats": None,
            "log": [],
        }
    return {
        "session_id": state.session_id,
        "running": state.running,
        "progress": round(state.progress, 2),
        "cancelled": state.cancelled,
        "error": state.error,
        "stats": asdict(state.stats),
        "log": state.log,
    }


@router.post("/v1/sessions/{session_id}/processing/cancel")
def cancel_session_processing(session_id: str) -> dict[str, object]:
    service = get_hazard_service()
    try:
        session = service.cancel_processing(session_id)
    except SessionNotFoundError as error:
        raise HTTPException(status_code=404, detail=str(error)) from error
    except SessionStateError as error:
        raise HTTPException(status_code=409, detail=str(error)) from error
    cancel_processing(session_id)
    return _session_to_dict(session)


@router.get("/v1/sessions/{session_id}/detections")
def get_detections(session_id: str) -> list[dict[str, object]]:
    try:
        events = get_hazard_service().list_detections(session_id)
    except SessionNotFoundError as error:
        raise HTTPException(status_code=404, detail=str(error)) from error
    return [detection_to_dict(event) for event in events]


@router.get("/v1/sessions/{session_id}/export")
def export_session_detections(
    session_id: str,
    fmt: Literal["csv", "json", "text"] = "csv",
) -> PlainTextResponse:
    try:
        events = get_hazard_service().list_detections(session_id)
    except SessionNotFoundError as error:
        raise HTTPException(status_code=404, detail=str(error)) from error

    extension = "txt" if fmt == "text" else fmt
    return PlainTextResponse(
        content=export_detections(events, fmt),
        media_type=_EXPORT_MEDIA_TYPES[fmt],
        headers={
            "Content-Disposition": (
                f'attachment; filename="pothole_data_{session_id[:8]}.{extension}"'
            )
        },
    )


@router.post("/v1/sessions/{session_id}/playback/start")
def start_playback(session_id: str) -> dict[str, object]:
    return _session_transition(session_id, get_hazard_service().start_playback)


@router.post("/v1/sessions/{session_id}/playback/stop")
def stop_playback(session_id: str) -> dict[str, object]:
    return _session_transition(session_id, get_hazard_service().stop_playback)


@router.post("/v1/sessions/{session_id}/playback/poll")
def poll_playback(session_id: str, payload: PlaybackPollRequest) -> dict[str, object]:
    service = get_hazard_service()
    try:
        alerts = service.poll_playback(session_id, payload.current_time)
    except SessionNotFoundError as error:
        raise HTTPException(status_code=404, detail=str(error)) from error
    except SessionStateError as error:
        raise HTTPException(status_code=409, detail=str(error)) from error

    return {
        "session_id": session_id,
        "current_time": payload.current_time,
        "alerts_fired": len(alerts),
        "alerts": [_alert_to_dict(alert) for alert in alerts],
    }


@router.get("/v1/sessions/{session_id}/alerts")
def get_alert_history(session_id: str) -> list[dict[str, object]]:
    try:
        history = get_hazard_service().list_alert_history(session_id)
    except SessionNotFoundError as error:
        raise HTTPException(status_code=404, detail=str(error)) from error
    return [detection_to_dict(event) for event in history]


@router.get("/v1/sessions/{session_id}/announcements")
def get_announcements(session_id: str) -> list[dict[str, object]]:
    if get_hazard_service().get_session(session_id) is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return [asdict(item) for item in announcements.drain(session_id)]


@router.get("/v1/sessions/{session_id}/notifications")
def get_notifications(session_id: str) -> list[dict[str, object]]:
    if get_hazard_service().get_session(session_id) is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return [asdict(item) for item in notifications.active(session_id)]


@router.get("/v1/sessions/{session_id}/report")
def get_session_report(session_id: str) -> dict[str, object]:
    try:
        return get_hazard_service().get_session_report(session_id)
    except SessionNotFoundError as error:
        raise HTTPException(status_code=404, detail=str(error)) from error


@router.get("/v1/potholes")
def list_potholes() -> list[dict[str, object]]:
    return [asdict(item) for item in pothole_store.snapshot()]


@router.post("/v1/potholes")
def add_pothole(payload: PotholeCreateRequest) -> list[dict[str, object]]:
    snapshot = pothole_store.add_report(
        {
            "latitude": payload.latitude,
            "longitude": payload.longitude,
            "address": payload.address,
            "severity": payload.severity,
            "description": payload.description,
            "reporter": payload.reporter,
        }
    )
    return [asdict(item) for item in snapshot]


@router.post("/v1/potholes/{pothole_id}/upvote")
def upvote_pothole(pothole_id: str) -> list[dict[str, object]]:
    try:
        snapshot = pothole_store.increment_upvote(pothole_id)
    except KeyError as error:
        raise HTTPException(status_code=404, detail="Pothole not found") from error
    return [asdict(item) for item in snapshot]


@router.get("/v1/map")
def get_map_layers() -> dict[str, object]:
    provider = GeoJsonMapProvider()
    if settings.boundaries_path:
        try:
            provider.load_boundaries(read_boundaries(settings.boundaries_path))
        except (OSError, ValueError) as error:
            logger.error("Failed to load district boundaries: %s", error)
    return render_potholes(pothole_store.snapshot(), provider)


@router.post("/v1/reports")
def create_report(payload: ReportCreateRequest) -> dict[str, object]:
    try:
        events = get_hazard_service().list_detections(payload.session_id)
    except SessionNotFoundError as error:
        raise HTTPException(status_code=404, detail=str(error)) from error
    event = next((item for item in events if item.event_id == payload.event_id), None)
    if event is None:
        raise HTTPException(status_code=404, detail="Detection not found")

    reported = None
    if payload.position is not None:
        reported = GPSCoordinates(
            latitude=payload.position.latitude,
            longitude=payload.position.longitude,
            accuracy=payload.position.accuracy,
            timestamp=time.time(),
        )
    coordinates = location_service.resolve_position(reported)
    if payload.reverse_geocode:
        location = location_service.reverse_geocode(coordinates)
    else:
        location = LocationData(coordinates=coordinates)

    report = reporting_service.create_report(
        detection=event,
        location=location,
        report_type=payload.report_type,
    )
    text = reporting_service.submit(report)
    return {**_report_to_dict(report), "text": text}


@router.get("/v1/reports")
def list_reports(
    status: Literal["pending", "submitted", "failed"] | None = None,
) -> list[dict[str, object]]:
    return [_report_to_dict(report) for report in reporting_service.list_reports(status)]


@router.get("/v1/reports/stats")
def get_report_stats() -> dict[str, object]:
    return reporting_service.statistics()


@router.get("/v1/reports/download")
def download_reports() -> PlainTextResponse:
    if not reporting_service.list_reports():
        raise HTTPException(status_code=404, detail="No reports to download")
    return PlainTextResponse(
        content=reporting_service.render_all(),
        headers={"Content-Disposition": 'attachment; filename="all_pothole_reports.txt"'},
    )


@router.post("/v1/chat")
def chat(payload: ChatRequest) -> dict[str, str]:
    reply = chat_client.complete([item.model_dump() for item in payload.messages])
    return {"role": "assistant", "content": reply}


@router.post("/v1/chat/stream")
def chat_stream(payload: ChatRequest) -> StreamingResponse:
    messages = [item.model_dump() for item in payload.messages]
    cancel_event = threading.Event()

    def _chunks():
        try:
            yield from chat_client.stream(messages, cancel_event=cancel_event)
        except ChatCompletionError:
            yield "\n[stream interrupted]"
        finally:
            cancel_event.set()

    return StreamingResponse(_chunks(), media_type="text/plain")


def _session_transition(session_id: str, transition) -> dict[str, object]:
    try:
        session = transition(session_id)
    except SessionNotFoundError as error:
        raise HTTPException(status_code=404, detail=str(error)) from error
    except SessionStateError as error:
        raise HTTPException(status_code=409, detail=str(error)) from error
    return _session_to_dict(session)


def _session_to_dict(session: AnalysisSession) -> dict[str, object]:
    return asdict(session)


def _alert_to_dict(alert: AlertMessage) -> dict[str, object]:
    return {
        "event_id": alert.event_id,
        "severity": alert.severity,
        "speech_text": alert.speech_text,
        "voice": asdict(alert.voice),
        "notification": asdict(alert.notification),
    }


def _report_to_dict(report: PotholeReport) -> dict[str, object]:
    coords = report.location.coordinates
    return {
        "report_id": report.report_id,
        "timestamp": report.timestamp,
        "report_type": report.report_type,
        "status": report.status,
        "event_id": report.detection.event_id,
        "severity": report.detection.severity,
        "latitude": coords.latitude,
        "longitude": coords.longitude,
        "address": report.location.address,
        "model_used": report.metadata.model_used,
    }



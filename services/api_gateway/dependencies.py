from libs.core.application.alert_dispatcher import AlertDispatcher
from libs.core.application.hazard_service import RoadHazardService
from libs.core.application.playback_matcher import PlaybackClockMatcher
from libs.core.application.reporting import ReportingService
from libs.core.application.timeline_generator import DetectionTimelineGenerator
from libs.infra.cerebras.chat_client import CerebrasChatClient
from libs.infra.geo.location_service import LocationService
from services.api_gateway.infrastructure.memory_store import (
    AnnouncementQueue,
    InMemoryDatabase,
    InMemoryDetectionRepository,
    InMemoryPotholeStore,
    InMemorySessionRepository,
    NotificationFeed,
)
from services.api_gateway.infrastructure.processing_runner import reset_runner_state
from services.api_gateway.settings import load_settings

settings = load_settings()

db = InMemoryDatabase()
session_repository = InMemorySessionRepository(db)
detection_repository = InMemoryDetectionRepository(db)
pothole_store = InMemoryPotholeStore()
announcements = AnnouncementQueue(enabled=settings.speech_enabled)
notifications = NotificationFeed()
hazard_service = RoadHazardService(
    session_repository=session_repository,
    detection_repository=detection_repository,
    generator=DetectionTimelineGenerator(),
    matcher=PlaybackClockMatcher(window_sec=settings.poll_window_sec),
    dispatcher=AlertDispatcher(speech=announcements, notifier=notifications),
)
reporting_service = ReportingService()
location_service = LocationService(nominatim_url=settings.nominatim_url)
chat_client = CerebrasChatClient(
    api_key=settings.cerebras_api_key,
    api_url=settings.cerebras_api_url,
    model=settings.cerebras_model,
)


def get_hazard_service() -> RoadHazardService:
    return hazard_service


def reset_state() -> None:
    reset_runner_state()
    db.clear()
    hazard_service.reset_runtime_state()
    pothole_store.reset()
    announcements.clear()
    notifications.clear()
    reporting_service.clear()

"""Environment-driven settings for the API gateway."""

import logging
import os
from dataclasses import dataclass

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    log_level: str
    poll_window_sec: float
    processing_tick_sec: float
    speech_enabled: bool
    cerebras_api_key: str | None
    cerebras_api_url: str
    cerebras_model: str
    nominatim_url: str
    boundaries_path: str | None


def load_settings() -> Settings:
    return Settings(
        log_level=os.getenv("ROADSENSE_LOG_LEVEL", "INFO").upper(),
        poll_window_sec=float(os.getenv("ROADSENSE_POLL_WINDOW_SEC", "0.5")),
        processing_tick_sec=float(os.getenv("ROADSENSE_PROCESSING_TICK_SEC", "0.2")),
        speech_enabled=os.getenv("ROADSENSE_SPEECH_ENABLED", "1") not in {"0", "false"},
        cerebras_api_key=os.getenv("CEREBRAS_API_KEY") or None,
        cerebras_api_url=os.getenv(
            "CEREBRAS_API_URL", "https://api.cerebras.ai/v1/chat/completions"
        ),
        cerebras_model=os.getenv("CEREBRAS_MODEL", "llama-3.3-70b"),
        nominatim_url=os.getenv(
            "NOMINATIM_URL", "https://nominatim.openstreetmap.org/reverse"
        ),
        boundaries_path=os.getenv("ROADSENSE_BOUNDARIES_PATH") or None,
    )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

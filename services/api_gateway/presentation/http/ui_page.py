"""Simple local console for video analysis and playback alerts."""

from pathlib import Path

_TEMPLATE_PATH = Path(__file__).with_name("templates") / "hazard_console.html"


def build_ui_html() -> str:
    return _TEMPLATE_PATH.read_text(encoding="utf-8")

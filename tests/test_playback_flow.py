"""Video analysis and playback alert API tests."""

import csv
import io
from typing import Any

import pytest

from fastapi.testclient import TestClient

from services.api_gateway.app import app
from libs.core.application.hazard_service import SessionStateError
from services.api_gateway.dependencies import get_hazard_service, reset_state
from services.api_gateway.presentation.http import routes as routes_module

client = TestClient(app)

DEMO_URL = "https://example.com/sample/ForBiggerBlazes.mp4"


def setup_function() -> None:
    reset_state()


def _create_session(video_url: str = DEMO_URL) -> str:
    response = client.post("/v1/sessions", json={"video_url": video_url})
    assert response.status_code == 200
    return response.json()["session_id"]


def _process(session_id: str) -> list[dict[str, Any]]:
    response = client.post(
        f"/v1/sessions/{session_id}/process", json={"background": False}
    )
    assert response.status_code == 200
    return response.json()["detections"]


def _poll(session_id: str, current_time: float) -> dict[str, Any]:
    response = client.post(
        f"/v1/sessions/{session_id}/playback/poll",
        json={"current_time": current_time},
    )
    assert response.status_code == 200
    return response.json()


def test_create_demo_session() -> None:
    response = client.post("/v1/sessions", json={"video_url": DEMO_URL})

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "created"
    assert payload["is_demo"] is True
    assert payload["duration_sec"] == 30.0


def test_process_demo_video_returns_fixed_timeline() -> None:
    session_id = _create_session()

    detections = _process(session_id)

    assert len(detections) == 8
    assert [item["time_in_video"] for item in detections][:3] == [3.5, 7.2, 11.5]
    session = client.get(f"/v1/sessions/{session_id}").json()
    assert session["status"] == "processed"


def test_playback_fires_each_detection_once() -> None:
    session_id = _create_session()
    _process(session_id)
    assert client.post(f"/v1/sessions/{session_id}/playback/start").status_code == 200

    fired = 0
    for tick in range(301):
        fired += _poll(session_id, tick * 0.1)["alerts_fired"]

    assert fired == 8
    history = client.get(f"/v1/sessions/{session_id}/alerts").json()
    assert len(history) == 8


def test_poll_at_exact_time_fires_high_alert() -> None:
    session_id = _create_session()
    _process(session_id)
    client.post(f"/v1/sessions/{session_id}/playback/start")

    first = _poll(session_id, 15.0)
    second = _poll(session_id, 15.0)

    assert first["alerts_fired"] == 1
    alert = first["alerts"][0]
    assert alert["severity"] == "high"
    assert "Critical" in alert["speech_text"]
    assert alert["voice"] == {"rate": 1.2, "pitch": 1.2, "volume": 1.0}
    assert second["alerts_fired"] == 0


def test_alert_reaches_announcements_and_notifications() -> None:
    session_id = _create_session()
    _process(session_id)
    client.post(f"/v1/sessions/{session_id}/playback/start")
    _poll(session_id, 3.5)

    announcements = client.get(f"/v1/sessions/{session_id}/announcements").json()
    notifications = client.get(f"/v1/sessions/{session_id}/notifications").json()

    assert len(announcements) == 1
    assert "Minor road damage" in announcements[0]["text"]
    assert notifications[0]["title"] == "Minor Road Damage Ahead"
    assert client.get(f"/v1/sessions/{session_id}/announcements").json() == []


def test_restart_clears_alert_history() -> None:
    session_id = _create_session()
    _process(session_id)
    client.post(f"/v1/sessions/{session_id}/playback/start")
    assert _poll(session_id, 7.2)["alerts_fired"] == 1

    stop = client.post(f"/v1/sessions/{session_id}/playback/stop")
    assert stop.status_code == 200
    assert stop.json()["status"] == "stopped"
    assert client.get(f"/v1/sessions/{session_id}/alerts").json() == []

    client.post(f"/v1/sessions/{session_id}/playback/start")
    assert _poll(session_id, 7.2)["alerts_fired"] == 1


def test_poll_before_start_returns_409() -> None:
    session_id = _create_session()
    _process(session_id)

    response = client.post(
        f"/v1/sessions/{session_id}/playback/poll", json={"current_time": 1.0}
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "Playback is not running"


def test_start_before_processing_returns_409() -> None:
    session_id = _create_session()

    response = client.post(f"/v1/sessions/{session_id}/playback/start")

    assert response.status_code == 409
    assert response.json()["detail"] == "Video has not been processed"


def test_background_processing_can_be_cancelled() -> None:
    session_id = _create_session()

    started = client.post(
        f"/v1/sessions/{session_id}/process", json={"background": True}
    )
    cancelled = client.post(f"/v1/sessions/{session_id}/processing/cancel")
    status = client.get(f"/v1/sessions/{session_id}/processing")

    assert started.status_code == 200
    assert started.json()["status"] == "processing"
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"
    assert status.status_code == 200
    assert client.post(f"/v1/sessions/{session_id}/playback/start").status_code == 409


def test_export_detections_as_csv_and_json() -> None:
    session_id = _create_session()
    _process(session_id)

    csv_response = client.get(f"/v1/sessions/{session_id}/export?fmt=csv")
    json_response = client.get(f"/v1/sessions/{session_id}/export?fmt=json")

    assert csv_response.status_code == 200
    assert "attachment" in csv_response.headers["content-disposition"]
    rows = list(csv.DictReader(io.StringIO(csv_response.text)))
    assert len(rows) == 8
    assert rows[3]["severity"] == "high"
    assert len(json_response.json()) == 8


def test_session_report_counts() -> None:
    session_id = _create_session()
    _process(session_id)
    client.post(f"/v1/sessions/{session_id}/playback/start")
    _poll(session_id, 15.0)
    _poll(session_id, 21.7)

    report = client.get(f"/v1/sessions/{session_id}/report").json()

    assert report["detections_total"] == 8
    assert report["detections_by_severity"] == {"low": 3, "medium": 3, "high": 2}
    assert report["alerts_fired"] == 2
    assert report["last_playback_time_sec"] == 21.7


def test_unknown_session_returns_404() -> None:
    assert client.get("/v1/sessions/missing").status_code == 404
    assert client.post("/v1/sessions/missing/playback/start").status_code == 404
    response = client.post(
        "/v1/sessions/missing/playback/poll", json={"current_time": 0.0}
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Session not found"


def test_late_completion_does_not_revive_cancelled_session() -> None:
    service = get_hazard_service()
    session_id = _create_session()
    service.begin_processing(session_id)
    service.cancel_processing(session_id)

    with pytest.raises(SessionStateError, match="Session is cancelled"):
        service.complete_processing(session_id)

    assert service.get_session(session_id).status == "cancelled"
    assert service.list_detections(session_id) == []


def test_reprocess_right_after_cancel_starts_new_run() -> None:
    session_id = _create_session()
    client.post(f"/v1/sessions/{session_id}/process", json={"background": True})
    client.post(f"/v1/sessions/{session_id}/processing/cancel")

    restarted = client.post(
        f"/v1/sessions/{session_id}/process", json={"background": True}
    )

    assert restarted.status_code == 200
    assert restarted.json()["status"] == "processing"
    cancelled = client.post(f"/v1/sessions/{session_id}/processing/cancel")
    assert cancelled.json()["status"] == "cancelled"


def test_failed_runner_start_restores_session_status(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def refusing_start(session_id, on_complete, tick_sec):
        raise ValueError("Processing already running for session")

    monkeypatch.setattr(routes_module, "start_processing", refusing_start)
    session_id = _create_session()

    response = client.post(
        f"/v1/sessions/{session_id}/process", json={"background": True}
    )

    assert response.status_code == 409
    assert client.get(f"/v1/sessions/{session_id}").json()["status"] == "created"
    assert _process(session_id)


def test_processing_status_exposes_console_log() -> None:
    session_id = _create_session()

    idle = client.get(f"/v1/sessions/{session_id}/processing").json()

    assert idle["log"] == []
    assert idle["running"] is False

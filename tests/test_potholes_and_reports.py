"""Pothole store, map layer and report API tests."""

import json
from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from services.api_gateway.app import app
from services.api_gateway.dependencies import pothole_store, reset_state, settings
from services.api_gateway.presentation.http import routes as routes_module

client = TestClient(app)

DEMO_URL = "https://example.com/sample/ForBiggerBlazes.mp4"


def setup_function() -> None:
    reset_state()


def _processed_event() -> tuple[str, dict]:
    session_id = client.post("/v1/sessions", json={"video_url": DEMO_URL}).json()[
        "session_id"
    ]
    detections = client.post(
        f"/v1/sessions/{session_id}/process", json={"background": False}
    ).json()["detections"]
    return session_id, detections[3]


def test_list_seeded_potholes() -> None:
    response = client.get("/v1/potholes")

    assert response.status_code == 200
    assert len(response.json()) == 6
    assert response.json()[3]["upvotes"] == 24


def test_add_report_returns_new_snapshot() -> None:
    before = pothole_store.snapshot()

    response = client.post(
        "/v1/potholes",
        json={
            "latitude": 12.9716,
            "longitude": 77.5946,
            "address": "MG Road, Bangalore",
            "severity": "high",
            "description": "Deep pothole near the metro pillar",
        },
    )

    assert response.status_code == 200
    potholes = response.json()
    assert len(potholes) == 7
    assert potholes[-1]["id"] == "7"
    assert potholes[-1]["status"] == "reported"
    assert potholes[-1]["upvotes"] == 0
    assert len(before) == 6


def test_upvote_increments_single_pothole() -> None:
    response = client.post("/v1/potholes/2/upvote")

    assert response.status_code == 200
    upvotes = {item["id"]: item["upvotes"] for item in response.json()}
    assert upvotes["2"] == 9
    assert upvotes["1"] == 12


def test_upvote_unknown_pothole_returns_404() -> None:
    response = client.post("/v1/potholes/99/upvote")

    assert response.status_code == 404
    assert response.json()["detail"] == "Pothole not found"


def test_invalid_severity_rejected() -> None:
    response = client.post(
        "/v1/potholes",
        json={
            "latitude": 1.0,
            "longitude": 1.0,
            "address": "x",
            "severity": "extreme",
        },
    )

    assert response.status_code == 422


def test_map_layers_are_geojson() -> None:
    response = client.get("/v1/map")

    assert response.status_code == 200
    payload = response.json()
    assert payload["type"] == "FeatureCollection"
    layers = [feature["properties"]["layer"] for feature in payload["features"]]
    assert layers.count("marker") == 6
    assert layers.count("heat") == 5


def test_map_includes_configured_boundaries(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    boundaries = tmp_path / "districts.geojson"
    boundaries.write_text(
        json.dumps(
            {
                "type": "FeatureCollection",
                "features": [
                    {
                        "type": "Feature",
                        "geometry": None,
                        "properties": {"district": "Bengaluru Urban"},
                    }
                ],
            }
        ),
        encoding="utf-8",
    )
    monkeypatch.setattr(
        routes_module, "settings", replace(settings, boundaries_path=str(boundaries))
    )

    features = client.get("/v1/map").json()["features"]

    assert features[0]["properties"] == {
        "district": "Bengaluru Urban",
        "layer": "boundary",
    }
    assert len(features) == 1 + 5 + 6


def test_map_skips_unreadable_boundaries(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    monkeypatch.setattr(
        routes_module,
        "settings",
        replace(settings, boundaries_path=str(tmp_path / "missing.geojson")),
    )

    response = client.get("/v1/map")

    assert response.status_code == 200
    assert len(response.json()["features"]) == 5 + 6


def test_create_report_with_fallback_position() -> None:
    session_id, event = _processed_event()

    response = client.post(
        "/v1/reports",
        json={"session_id": session_id, "event_id": event["event_id"]},
    )

    assert response.status_code == 200
    report = response.json()
    assert report["status"] == "submitted"
    assert report["severity"] == "high"
    assert report["latitude"] == 20.5937
    assert "POTHOLE DETECTION REPORT" in report["text"]
    assert "Address not available" in report["text"]


def test_report_stats_and_filters() -> None:
    session_id, event = _processed_event()
    client.post(
        "/v1/reports",
        json={
            "session_id": session_id,
            "event_id": event["event_id"],
            "report_type": "manual",
            "position": {"latitude": 12.97, "longitude": 77.59, "accuracy": 8.0},
        },
    )

    stats = client.get("/v1/reports/stats").json()
    submitted = client.get("/v1/reports?status=submitted").json()
    pending = client.get("/v1/reports?status=pending").json()
    download = client.get("/v1/reports/download")

    assert stats["total"] == 1
    assert stats["by_severity"]["high"] == 1
    assert stats["by_status"]["submitted"] == 1
    assert submitted[0]["latitude"] == 12.97
    assert pending == []
    assert download.status_code == 200
    assert "Report Type: MANUAL" in download.text


def test_report_for_unknown_event_returns_404() -> None:
    session_id, _ = _processed_event()

    response = client.post(
        "/v1/reports", json={"session_id": session_id, "event_id": "nope"}
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Detection not found"


def test_download_without_reports_returns_404() -> None:
    assert client.get("/v1/reports/download").status_code == 404

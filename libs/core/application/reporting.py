"""Pothole reports and detection exports."""

from __future__ import annotations

import csv
import io
import json
import logging
import threading
from dataclasses import asdict
from datetime import datetime, timezone
from uuid import uuid4

from libs.core.domain.entities import (
    DetectionEvent,
    LocationData,
    PotholeReport,
    ReportMetadata,
)

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"
REPORT_SEPARATOR = "\n\n" + "=" * 80 + "\n\n"
EXPORT_FORMATS = ("csv", "json", "text")

_CSV_COLUMNS = (
    "event_id",
    "time_in_video",
    "severity",
    "size",
    "confidence",
    "distance",
    "location_name",
    "lat",
    "lng",
    "depth_estimate",
    "surface_damage_estimate",
    "detection_algorithm",
    "road_type",
    "weather_conditions",
    "vehicle_risk_level",
)


class ReportingService:
    """Keeps reports created during the process lifetime."""

    def __init__(self) -> None:
        self._reports: list[PotholeReport] = []
        self._lock = threading.Lock()

    def create_report(
        self,
        detection: DetectionEvent,
        location: LocationData,
        report_type: str = "automatic",
        device_info: str = "server",
    ) -> PotholeReport:
        report = PotholeReport(
            report_id=f"report_{uuid4().hex[:12]}",
            timestamp=_utc_now_iso(),
            detection=detection,
            location=location,
            report_type=report_type,
            status="pending",
            metadata=ReportMetadata(
                device_info=device_info,
                app_version=APP_VERSION,
                model_used=detection.detection_algorithm or "YOLOv8",
            ),
        )
        with self._lock:
            self._reports.append(report)
        logger.info("Created report %s", report.report_id)
        return report

    def submit(self, report: PotholeReport) -> str:
        """Render the report and mark it submitted."""
        text = format_report_as_text(report)
        report.status = "submitted"
        return text

    def list_reports(self, status: str | None = None) -> list[PotholeReport]:
        with self._lock:
            reports = list(self._reports)
        if status is None:
            return reports
        return [report for report in reports if report.status == status]

    def render_all(self) -> str:
        return REPORT_SEPARATOR.join(
            format_report_as_text(report) for report in self.list_reports()
        )

    def statistics(self) -> dict[str, object]:
        reports = self.list_reports()
        return {
            "total": len(reports),
            "by_severity": {
                severity: sum(
                    1 for report in reports if report.detection.severity == severity
                )
                for severity in ("high", "medium", "low")
            },
            "by_status": {
                status: sum(1 for report in reports if report.status == status)
                for status in ("pending", "submitted", "failed")
            },
        }

    def clear(self) -> None:
        with self._lock:
            self._reports.clear()


def format_report_as_text(report: PotholeReport) -> str:
    detection = report.detection
    location = report.location
    coords = location.coordinates
    return f"""POTHOLE DETECTION REPORT
========================

Report ID: {report.report_id}
Timestamp: {report.timestamp}
Report Type: {report.report_type.upper()}
Status: {report.status.upper()}

DETECTION DETAILS
-----------------
Detection ID: {detection.event_id}
Time in Video: {detection.time_in_video:.2f}s
Confidence: {detection.confidence * 100:.1f}%
Severity: {detection.severity.upper()}
Size: {detection.size.upper()}
Algorithm: {detection.detection_algorithm}

POTHOLE CHARACTERISTICS
-----------------------
Estimated Depth: {detection.depth_estimate} cm
Surface Damage: {detection.surface_damage_estimate}%
Distance from Vehicle: {detection.distance} meters

LOCATION INFORMATION
--------------------
Latitude: {coords.latitude}
Longitude: {coords.longitude}
Accuracy: {coords.accuracy if coords.accuracy is not None else "N/A"} meters
Address: {location.address or "Address not available"}
Road Name: {location.road_name or "Unknown road"}
City: {location.city or "Unknown city"}
State: {location.state or "Unknown state"}
Country: {location.country or "Unknown country"}

TECHNICAL METADATA
------------------
Device: {report.metadata.device_info}
App Version: {report.metadata.app_version}
Model Used: {report.metadata.model_used}

Generated at: {_utc_now_iso()}
"""


def detection_to_dict(event: DetectionEvent) -> dict[str, object]:
    payload = asdict(event)
    payload["location"] = {"lat": event.location.lat, "lng": event.location.lng}
    return payload


def export_detections(events: list[DetectionEvent], fmt: str) -> str:
    if fmt == "json":
        return json.dumps([detection_to_dict(event) for event in events], indent=2)
    if fmt == "csv":
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(_CSV_COLUMNS)
        for event in events:
            writer.writerow(
                [
                    event.event_id,
                    f"{event.time_in_video:.3f}",
                    event.severity,
                    event.size,
                    f"{event.confidence:.4f}",
                    event.distance,
                    event.location_name or "",
                    f"{event.location.lat:.6f}",
                    f"{event.location.lng:.6f}",
                    event.depth_estimate,
                    event.surface_damage_estimate,
                    event.detection_algorithm,
                    event.road_type,
                    event.weather_conditions,
                    event.vehicle_risk_level,
                ]
            )
        return buffer.getvalue()
    if fmt == "text":
        lines = [
            f"{_format_clock(event.time_in_video)}  {event.severity:<6} "
            f"{event.size:<6} {event.confidence * 100:5.1f}%  "
            f"{event.distance}m  {event.location_name or '-'}"
            for event in events
        ]
        return "\n".join(lines) + ("\n" if lines else "")
    raise ValueError(f"Unsupported export format: {fmt}")


def _format_clock(seconds: float) -> str:
    return f"{int(seconds // 60)}:{int(seconds % 60):02d}"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

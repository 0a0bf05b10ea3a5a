from __future__ import annotations

import math
import random
from collections.abc import Iterator

from libs.core.domain.entities import ProcessingStats

MODEL_NAMES = (
    "PotholeNet-v3.4",
    "RoadDamageDetector-v2.1",
    "YOLO-Pothole-v4.5",
    "InfraSense-v1.2",
    "UrbanRoad-QualityNet",
)
FRAMES_PER_PROGRESS_POINT = 30


def iter_processing_progress(
    rng: random.Random | None = None,
) -> Iterator[tuple[float, ProcessingStats]]:
    """Yield simulated (progress %, stats) steps until progress reaches 100."""
    rng = rng or random.Random()
    model_name = rng.choice(MODEL_NAMES)
    progress = 0.0
    while progress < 100:
        progress += rng.random() * 2 + 0.5
        stats = ProcessingStats(
            frames_processed=math.floor(progress * FRAMES_PER_PROGRESS_POINT),
            frames_per_second=25 + math.sin(progress / 10) * 5,
            detection_accuracy=min(99.0, 70 + progress / 3),
            memory_usage=800 + math.sin(progress / 5) * 200,
            gpu_utilization=min(100.0, 60 + math.sin(progress / 7) * 20),
            model_name=model_name,
            detection_events=math.floor(progress / 10),
            status="Running",
        )
        yield min(progress, 100.0), stats


CONSOLE_TEMPLATES = (
    "[INFO] Processing frame {frame_num}...",
    "[INFO] Batch processing complete: {frames} frames",
    "[DEBUG] GPU memory usage: {memory}MB",
    "[INFO] Detection confidence threshold: {threshold}%",
    "[DEBUG] Model inference time: {inference}ms per frame",
    "[INFO] Road surface analysis complete for segment {segment}",
    "[DEBUG] Running non-maximum suppression on detections",
    "[INFO] Found {pothole_count} potential road anomalies",
    "[DEBUG] Applying texture analysis to frame {frame_num}",
    "[INFO] Weather condition detected: {weather}",
    "[DEBUG] Road type classification: {road_type}",
)
CONSOLE_WEATHERS = ("Clear", "Rainy", "Overcast", "Sunny", "Post-rain")
CONSOLE_ROAD_TYPES = ("Asphalt", "Concrete", "Bitumen", "Gravel", "WBM")


def format_console_line(progress: float, rng: random.Random | None = None) -> str:
    """Return one simulated inference log line for the given progress."""
    rng = rng or random.Random()
    template = rng.choice(CONSOLE_TEMPLATES)
    return template.format(
        frame_num=math.floor(progress * FRAMES_PER_PROGRESS_POINT),
        frames=math.floor(rng.random() * 30 + 20),
        memory=f"{800 + rng.random() * 200:.1f}",
        threshold=f"{65 + rng.random() * 10:.1f}",
        inference=f"{15 + rng.random() * 10:.1f}",
        segment=math.floor(progress / 10),
        pothole_count=rng.randint(1, 5),
        weather=rng.choice(CONSOLE_WEATHERS),
        road_type=rng.choice(CONSOLE_ROAD_TYPES),
    )

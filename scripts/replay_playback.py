from __future__ import annotations

import argparse
import json
import logging
import time
from dataclasses import dataclass
from urllib import request

logger = logging.getLogger("replay_playback")

DEMO_VIDEO_URL = (
    "https://commondatastorage.googleapis.com/gtv-videos-bucket/sample/"
    "ForBiggerBlazes.mp4"
)


@dataclass
class ReplayContext:
    """Runtime context for playback poll requests."""

    api_base: str
    session_id: str
    poll_interval: float
    speed: float


def post_json(url: str, payload: dict) -> dict:
    data = json.dumps(payload).encode("utf-8")
    req = request.Request(
        url=url,
        data=data,
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    with request.urlopen(req, timeout=10) as resp:
        return json.loads(resp.read().decode("utf-8"))


def replay(context: ReplayContext, duration_sec: float) -> int:
    """Advance a simulated playback clock and poll the API; return alerts fired."""
    base = f"{context.api_base}/v1/sessions/{context.session_id}"
    post_json(f"{base}/playback/start", {})

    fired = 0
    current_time = 0.0
    while current_time <= duration_sec:
        response = post_json(f"{base}/playback/poll", {"current_time": current_time})
        for alert in response["alerts"]:
            fired += 1
            logger.info(
                "[%6.2fs] %s: %s",
                current_time,
                alert["severity"].upper(),
                alert["speech_text"],
            )
        time.sleep(context.poll_interval)
        current_time = round(current_time + context.poll_interval * context.speed, 3)

    post_json(f"{base}/playback/stop", {})
    return fired


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--video-url", default=DEMO_VIDEO_URL)
    parser.add_argument("--api-base", default="http://127.0.0.1:8000")
    parser.add_argument("--poll-interval", type=float, default=0.1)
    parser.add_argument(
        "--speed",
        type=float,
        default=1.0,
        help="Playback speed multiplier; values above 5 skip past the match window",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    if args.poll_interval <= 0 or args.speed <= 0:
        raise SystemExit("poll interval and speed must be positive")

    session = post_json(f"{args.api_base}/v1/sessions", {"video_url": args.video_url})
    processed = post_json(
        f"{args.api_base}/v1/sessions/{session['session_id']}/process",
        {"background": False},
    )
    context = ReplayContext(
        api_base=args.api_base,
        session_id=session["session_id"],
        poll_interval=args.poll_interval,
        speed=args.speed,
    )
    logger.info(
        "[INFO] session_id=%s, detections=%d",
        context.session_id,
        len(processed["detections"]),
    )

    fired = replay(context, duration_sec=session["duration_sec"])

    logger.info("[DONE] session_id=%s alerts=%d", context.session_id, fired)
    logger.info(
        "Check report: %s/v1/sessions/%s/report", context.api_base, context.session_id
    )


if __name__ == "__main__":
    main()

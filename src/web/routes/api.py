from __future__ import annotations

import time
from typing import Iterable, Optional

import cv2
from fastapi import APIRouter, HTTPException
from fastapi.responses import Response, StreamingResponse

from ..state import state
from ..api_models import OverlaysResponse, StatusResponse

router = APIRouter()


def _frame_age(last_frame_ts: Optional[float], now: float) -> Optional[float]:
    """Seconds since the last frame, None if no frame was ever processed."""
    if not last_frame_ts:
        return None
    return max(0.0, now - last_frame_ts)


def _encode_jpeg(frame) -> Optional[bytes]:
    ok, buf = cv2.imencode(".jpg", frame)
    if not ok:
        return None
    return buf.tobytes()


@router.get("/status", response_model=StatusResponse)
def status():
    """
    Frame loop status for the UI.
    Fields:
    - running: whether the frame loop is active
    - frame_index / frames_processed / fps: progress
    - last_frame_age_s: seconds since the last processed frame (None if never)
    - summary: "Detected objects: label: confidence, ..." for the last frame
    - count_by_state: stable/moving/new counts for the last frame
    - last_run: RunReport of the finished run
    """
    snapshot = state.get_snapshot()
    sys_stats = snapshot["system_stats"]

    return {
        "running": snapshot["running"],
        "frame_index": snapshot["frame_index"],
        "frames_processed": sys_stats.get("frames_processed", 0),
        "fps": round(float(sys_stats.get("fps", 0.0)), 2),
        "last_frame_age_s": _frame_age(sys_stats.get("last_frame_ts"), time.time()),
        "summary": snapshot["summary"],
        "count_by_state": snapshot["count_by_state"],
        "last_run": snapshot["run_report"],
    }


@router.get("/overlays", response_model=OverlaysResponse)
def overlays():
    """Classified boxes of the last processed frame, in detector order."""
    frame_index, boxes = state.get_overlays()
    return {"frame_index": frame_index, "boxes": boxes}


@router.get("/snapshot")
def snapshot():
    frame = state.get_frame()
    if frame is None:
        raise HTTPException(status_code=503, detail="No frame processed yet")
    jpg = _encode_jpeg(frame)
    if jpg is None:
        raise HTTPException(status_code=500, detail="Failed to encode JPEG")
    return Response(content=jpg, media_type="image/jpeg")


def mjpeg_stream(fps: int = 10, max_frames: Optional[int] = None) -> Iterable[bytes]:
    """Yield MJPEG multipart chunks of the latest annotated frame."""
    delay = 1.0 / max(1, min(30, int(fps)))
    sent = 0
    while max_frames is None or sent < max_frames:
        frame = state.get_frame()
        jpg = _encode_jpeg(frame) if frame is not None else None
        if jpg is not None:
            yield b"--frame\r\nContent-Type: image/jpeg\r\n\r\n" + jpg + b"\r\n"
            sent += 1
        time.sleep(delay)


@router.get("/video_feed")
def video_feed(fps: int = 10):
    return StreamingResponse(
        mjpeg_stream(fps=fps),
        media_type="multipart/x-mixed-replace; boundary=frame",
    )

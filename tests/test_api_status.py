"""
Tests for the preview web API.
"""

import time

import numpy as np
import pytest
from fastapi.testclient import TestClient

from models.detection import BoxState, ClassifiedBox, Detection, DisplayRect
from models.frame import FrameResult
from models.status import RunReport, RunStatus
from web.app import create_app
from web.routes.api import _frame_age, mjpeg_stream
from web.state import state


@pytest.fixture(autouse=True)
def clean_state():
    state.reset()
    yield
    state.reset()


@pytest.fixture
def client():
    return TestClient(create_app())


@pytest.fixture
def published(make_frame_data):
    car = Detection.from_xywh(0.1, 0.2, 0.3, 0.4, "car", 0.9)
    result = FrameResult(
        frame_data=make_frame_data(index=12, width=64, height=48),
        detections=[car],
        boxes=[
            ClassifiedBox(DisplayRect(10, 20, 30, 40), BoxState.MOVING, car),
            ClassifiedBox(DisplayRect(1, 2, 3, 4), BoxState.NEW),
        ],
        summary="Detected objects: car: 0.90",
    )
    state.update_system_stats({"start_time": time.time() - 1.0})
    state.publish(result.frame_data.frame, result)
    return result


class TestFrameAge:
    def test_none_when_never_seen(self):
        assert _frame_age(None, 100.0) is None

    def test_seconds_since_last_frame(self):
        assert _frame_age(95.0, 100.0) == 5.0

    def test_never_negative(self):
        assert _frame_age(101.0, 100.0) == 0.0


class TestSharedState:
    def test_publish_copies_frame(self, published):
        frame = state.get_frame()
        frame[:] = 255

        assert state.get_frame().sum() == 0

    def test_overlays_are_plain_dicts(self, published):
        frame_index, boxes = state.get_overlays()

        assert frame_index == 12
        assert boxes[0]["state"] == "moving"
        assert boxes[0]["label"] == "car"

    def test_set_running_keeps_report(self):
        report = RunReport(status=RunStatus.COMPLETED, frames_processed=3)

        state.set_running(False, report)

        snapshot = state.get_snapshot()
        assert snapshot["running"] is False
        assert snapshot["run_report"]["frames_processed"] == 3


class TestStatusEndpoint:
    def test_status_before_any_frame(self, client):
        response = client.get("/api/status")

        assert response.status_code == 200
        body = response.json()
        assert body["running"] is False
        assert body["frames_processed"] == 0
        assert body["last_frame_age_s"] is None
        assert body["last_run"] is None

    def test_status_after_frame(self, client, published):
        state.set_running(True)

        body = client.get("/api/status").json()

        assert body["running"] is True
        assert body["frame_index"] == 12
        assert body["frames_processed"] == 1
        assert body["summary"] == "Detected objects: car: 0.90"
        assert body["count_by_state"] == {"stable": 0, "moving": 1, "new": 1}
        assert body["last_frame_age_s"] >= 0.0
        assert body["fps"] > 0

    def test_status_includes_last_run(self, client):
        state.set_running(False, RunReport(status=RunStatus.SOURCE_ERROR, reason="missing"))

        body = client.get("/api/status").json()

        assert body["last_run"]["status"] == "source_error"
        assert body["last_run"]["reason"] == "missing"


class TestOverlaysEndpoint:
    def test_overlays(self, client, published):
        body = client.get("/api/overlays").json()

        assert body["frame_index"] == 12
        assert [b["state"] for b in body["boxes"]] == ["moving", "new"]
        assert body["boxes"][0]["confidence"] == pytest.approx(0.9)
        assert body["boxes"][1]["label"] is None

    def test_overlays_empty(self, client):
        body = client.get("/api/overlays").json()

        assert body == {"frame_index": 0, "boxes": []}


class TestFrameEndpoints:
    def test_snapshot_unavailable_without_frame(self, client):
        assert client.get("/api/snapshot").status_code == 503

    def test_snapshot_returns_jpeg(self, client, published):
        response = client.get("/api/snapshot")

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        assert response.content[:2] == b"\xff\xd8"

    def test_mjpeg_stream_chunks(self, published):
        chunks = list(mjpeg_stream(fps=30, max_frames=2))

        assert len(chunks) == 2
        assert chunks[0].startswith(b"--frame\r\nContent-Type: image/jpeg\r\n\r\n")

    def test_index_page(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert "/api/video_feed" in response.text

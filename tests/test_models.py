"""
Tests for the data models.
"""

import time

import numpy as np
import pytest
from dataclasses import FrozenInstanceError

from models import (
    BoxState,
    ClassifiedBox,
    Config,
    Detection,
    DisplayRect,
    FrameData,
    FrameResult,
    NormalizedBox,
    RunReport,
    RunStatus,
    UNKNOWN_LABEL,
)


class TestNormalizedBox:
    def test_from_xyxyn(self):
        box = NormalizedBox.from_xyxyn(0.25, 0.5, 0.75, 1.0)

        assert box.as_tuple() == (0.25, 0.5, 0.5, 0.5)

    def test_from_pixels(self):
        box = NormalizedBox.from_pixels(160, 120, 320, 240, frame_width=640, frame_height=480)

        assert box.as_tuple() == (0.25, 0.25, 0.5, 0.5)

    def test_frozen(self):
        box = NormalizedBox(0.1, 0.1, 0.2, 0.2)
        with pytest.raises(FrozenInstanceError):
            box.x = 0.5


class TestDetection:
    def test_from_xywh(self):
        det = Detection.from_xywh(0.1, 0.2, 0.3, 0.4, label="car", confidence=0.9)

        assert det.box == NormalizedBox(0.1, 0.2, 0.3, 0.4)
        assert det.label == "car"
        assert det.confidence == 0.9

    def test_display_label_falls_back_to_unknown(self):
        det = Detection.from_xywh(0.1, 0.2, 0.3, 0.4)

        assert det.label is None
        assert det.display_label == UNKNOWN_LABEL

    def test_equal_detections_compare_equal(self):
        a = Detection.from_xywh(0.1, 0.2, 0.3, 0.4, label="car", confidence=0.5)
        b = Detection.from_xywh(0.1, 0.2, 0.3, 0.4, label="car", confidence=0.5)

        assert a == b


class TestDisplayRect:
    def test_swapped(self):
        rect = DisplayRect(10, 20, 30, 40)

        assert rect.swapped() == DisplayRect(20, 10, 40, 30)

    def test_as_int_xyxy(self):
        rect = DisplayRect(10.7, 20.2, 30.0, 40.0)

        assert rect.as_int_xyxy() == (10, 20, 40, 60)


class TestBoxState:
    def test_new_renders_as_moving(self):
        assert BoxState.NEW.renders_as_moving is True
        assert BoxState.MOVING.renders_as_moving is True
        assert BoxState.STABLE.renders_as_moving is False

    def test_string_values(self):
        assert BoxState.STABLE.value == "stable"
        assert BoxState("new") is BoxState.NEW


class TestClassifiedBox:
    def test_to_dict_with_detection(self, car_detection):
        box = ClassifiedBox(DisplayRect(1, 2, 3, 4), BoxState.MOVING, car_detection)

        assert box.to_dict() == {
            "x": 1,
            "y": 2,
            "width": 3,
            "height": 4,
            "state": "moving",
            "label": "car",
            "confidence": 0.9,
        }

    def test_to_dict_without_detection(self):
        box = ClassifiedBox(DisplayRect(1, 2, 3, 4), BoxState.STABLE)

        d = box.to_dict()
        assert d["state"] == "stable"
        assert "label" not in d


class TestFrameData:
    def test_from_numpy(self):
        frame = np.zeros((480, 640, 3), dtype=np.uint8)

        fd = FrameData.from_numpy(frame, timestamp=time.time(), frame_index=3, source="cam")

        assert fd.width == 640
        assert fd.height == 480
        assert fd.size == (640, 480)
        assert fd.frame_index == 3


class TestFrameResult:
    def test_count_by_state_includes_all_states(self, make_frame_data):
        result = FrameResult(
            frame_data=make_frame_data(index=7),
            boxes=[
                ClassifiedBox(DisplayRect(0, 0, 1, 1), BoxState.NEW),
                ClassifiedBox(DisplayRect(0, 0, 1, 1), BoxState.NEW),
                ClassifiedBox(DisplayRect(0, 0, 1, 1), BoxState.STABLE),
            ],
        )

        assert result.frame_index == 7
        assert result.count_by_state() == {"stable": 1, "moving": 0, "new": 2}


class TestRunReport:
    def test_ok_and_duration(self):
        report = RunReport(status=RunStatus.COMPLETED, started_at=100.0, finished_at=102.5)

        assert report.ok is True
        assert report.duration == 2.5

    def test_unfinished_has_no_duration(self):
        report = RunReport(status=RunStatus.FAILED)

        assert report.ok is False
        assert report.duration is None

    def test_to_dict(self):
        report = RunReport(status=RunStatus.SOURCE_ERROR, reason="missing", started_at=1.0)

        d = report.to_dict()
        assert d["status"] == "source_error"
        assert d["reason"] == "missing"
        assert d["frames_processed"] == 0


class TestConfig:
    def test_defaults(self):
        cfg = Config.from_dict({})

        assert cfg.tracking.movement_threshold_px == 10.0
        assert cfg.tracking.swap_axes is True
        assert cfg.summary.min_confidence == 0.8
        assert cfg.detection.backend == "yolo"
        assert cfg.web.enabled is False

    def test_from_dict_reads_sections(self, valid_config):
        cfg = Config.from_dict(valid_config)

        assert cfg.source.path == "clip.mp4"
        assert cfg.detection.backend == "bgsub"
        assert cfg.detection.bgsub.min_contour_area == 500
        assert cfg.web.host == "127.0.0.1"
        assert cfg.log_level == "INFO"

    def test_to_dict_round_trip(self, valid_config):
        cfg = Config.from_dict(valid_config)

        again = Config.from_dict(cfg.to_dict())

        assert again == cfg

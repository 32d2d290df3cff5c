"""
Tests for the observation layer (frame sources).
"""

import time
from unittest.mock import MagicMock, patch

import cv2
import numpy as np
import pytest

from observation import (
    ObservationConfig,
    ObservationSource,
    OpenCVSource,
    OpenCVSourceConfig,
    create_source_from_config,
)
from models.errors import SourceOpenError
from models.frame import FrameData
from models.status import SourceStatus


class MockSource(ObservationSource):
    """In-memory source producing a fixed number of frames."""

    def __init__(self, config: ObservationConfig, num_frames: int = 3):
        super().__init__(config)
        self._num_frames = num_frames

    def open(self) -> None:
        self._is_open = True
        self._frame_index = 0

    def read(self):
        if self._frame_index >= self._num_frames:
            self._complete()
            return None
        self._frame_index += 1
        frame = np.full((4, 4, 3), self._frame_index, dtype=np.uint8)
        return FrameData.from_numpy(frame, time.time(), self._frame_index, self.source_id)

    def close(self) -> None:
        self._is_open = False


def write_video(path, num_frames=5, size=(64, 48)):
    """Write a small MJPG .avi; returns False if the codec is unavailable."""
    width, height = size
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), 10.0, (width, height), True)
    if not writer.isOpened():
        return False
    for i in range(num_frames):
        writer.write(np.full((height, width, 3), i * 20, dtype=np.uint8))
    writer.release()
    return True


class TestObservationConfig:
    def test_default_config(self):
        config = ObservationConfig()

        assert config.source_id == "default"
        assert config.metadata == {}

    def test_custom_config(self):
        config = ObservationConfig(source_id="clip", metadata={"fps": 30})

        assert config.source_id == "clip"
        assert config.metadata["fps"] == 30


class TestOpenCVSourceConfig:
    def test_from_source_config(self):
        config = OpenCVSourceConfig.from_source_config(
            {"path": "clip.mp4", "rotate": 90}, source_id="main"
        )

        assert config.path == "clip.mp4"
        assert config.rotate == 90
        assert config.source_id == "main"

    def test_digit_string_is_camera_index(self):
        config = OpenCVSourceConfig.from_source_config({"path": "1"})

        assert config.path == 1

    def test_create_source_from_config(self):
        source = create_source_from_config({"path": "clip.mp4"}, source_id="video-1")

        assert isinstance(source, OpenCVSource)
        assert source.source_id == "video-1"
        assert source.is_file is True


class TestMockSource:
    def test_source_lifecycle(self):
        source = MockSource(ObservationConfig(source_id="mock"))

        assert source.status is SourceStatus.READING
        assert not source.is_open
        source.open()
        assert source.is_open
        assert source.read().frame_index == 1
        source.close()
        assert not source.is_open

    def test_context_manager(self):
        with MockSource(ObservationConfig()) as source:
            assert source.is_open
        assert not source.is_open

    def test_iteration_yields_frames_in_order(self):
        with MockSource(ObservationConfig(), num_frames=4) as source:
            indices = [fd.frame_index for fd in source]

        assert indices == [1, 2, 3, 4]
        assert source.status is SourceStatus.COMPLETED

    def test_empty_source(self):
        with MockSource(ObservationConfig(), num_frames=0) as source:
            assert list(source) == []
        assert source.status is SourceStatus.COMPLETED

    def test_iteration_requires_open(self):
        source = MockSource(ObservationConfig())

        with pytest.raises(RuntimeError):
            list(source)

    def test_fail_records_reason(self):
        source = MockSource(ObservationConfig())

        source._fail("unplugged")

        assert source.status is SourceStatus.FAILED
        assert source.failure_reason == "unplugged"


class TestOpenCVSource:
    def test_missing_file_raises_and_fails(self, tmp_path):
        source = OpenCVSource(OpenCVSourceConfig(path=str(tmp_path / "missing.mp4")))

        with pytest.raises(SourceOpenError):
            source.open()

        assert source.status is SourceStatus.FAILED
        assert "not found" in source.failure_reason
        assert not source.is_open

    def test_read_before_open_returns_none(self):
        source = OpenCVSource(OpenCVSourceConfig(path="clip.mp4"))

        assert source.read() is None

    def test_get_video_info_before_open(self):
        source = OpenCVSource(OpenCVSourceConfig(path="clip.mp4"))

        assert source.get_video_info() == {}

    def test_close_is_idempotent(self):
        source = OpenCVSource(OpenCVSourceConfig(path="clip.mp4"))

        source.close()
        source.close()

        assert not source.is_open

    def test_reads_file_to_completion(self, tmp_path):
        path = tmp_path / "clip.avi"
        if not write_video(path, num_frames=5):
            pytest.skip("MJPG writer not available in this OpenCV build")

        source = OpenCVSource(OpenCVSourceConfig(source_id="clip", path=str(path)))
        with source:
            frames = list(source)

        assert len(frames) == 5
        assert [fd.frame_index for fd in frames] == [1, 2, 3, 4, 5]
        assert frames[0].size == (64, 48)
        assert frames[0].source == "clip"
        assert source.status is SourceStatus.COMPLETED

    def test_rotation_swaps_frame_size(self, tmp_path):
        path = tmp_path / "clip.avi"
        if not write_video(path, num_frames=2):
            pytest.skip("MJPG writer not available in this OpenCV build")

        source = OpenCVSource(OpenCVSourceConfig(path=str(path), rotate=90))
        with source:
            frame_data = source.read()

        assert frame_data.size == (48, 64)


def fake_capture(decoded, header_count, readable_after_failure=False):
    """VideoCapture stand-in that decodes `decoded` frames and reports `header_count`."""
    frame = np.zeros((48, 64, 3), dtype=np.uint8)
    cap = MagicMock()
    cap.isOpened.return_value = True
    cap.get.side_effect = lambda prop: float(header_count) if prop == cv2.CAP_PROP_FRAME_COUNT else 0.0
    cap.read.side_effect = [(True, frame)] * decoded + [(False, None)]
    cap.grab.return_value = readable_after_failure
    return cap


class TestFrameCountHeader:
    @pytest.fixture
    def clip(self, tmp_path):
        path = tmp_path / "clip.mp4"
        path.write_bytes(b"")
        return str(path)

    def test_overstated_header_count_completes(self, clip):
        cap = fake_capture(decoded=10, header_count=12)

        with patch("observation.opencv_source.cv2.VideoCapture", return_value=cap):
            source = OpenCVSource(OpenCVSourceConfig(path=clip))
            with source:
                frames = list(source)

        assert len(frames) == 10
        assert source.status is SourceStatus.COMPLETED
        assert source.failure_reason is None

    def test_unreadable_frame_mid_file_fails(self, clip):
        cap = fake_capture(decoded=2, header_count=12, readable_after_failure=True)

        with patch("observation.opencv_source.cv2.VideoCapture", return_value=cap):
            source = OpenCVSource(OpenCVSourceConfig(path=clip))
            with source:
                frames = list(source)

        assert len(frames) == 2
        assert source.status is SourceStatus.FAILED
        assert source.failure_reason == "Failed to decode frame 3 of 12"

    def test_header_count_reached_completes_without_grab(self, clip):
        cap = fake_capture(decoded=5, header_count=5)

        with patch("observation.opencv_source.cv2.VideoCapture", return_value=cap):
            source = OpenCVSource(OpenCVSourceConfig(path=clip))
            with source:
                list(source)

        assert source.status is SourceStatus.COMPLETED
        cap.grab.assert_not_called()

"""
OpenCV-based observation source.

Supports:
- Video files (path as str)
- USB webcams (device index as int, e.g., 0)

Frames are decoded in order with cv2.VideoCapture. End of a file sets the
status to COMPLETED; an unreadable frame in the middle of a file, or a device
that stops delivering frames, sets it to FAILED.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import cv2
import numpy as np

from models.errors import SourceOpenError
from models.frame import FrameData
from models.status import SourceStatus
from .base import ObservationSource, ObservationConfig


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Configuration for OpenCV-based observation sources.

    Attributes:
        path: Video file path (str) or camera index (int).
        max_retries: Maximum reinitialization attempts for cameras.
        rotate: Rotation in degrees applied to decoded frames (0, 90, 180, 270).
    """
    path: Union[int, str] = 0
    max_retries: int = 3
    rotate: int = 0

    @classmethod
    def from_source_config(cls, source_cfg: Dict[str, Any], source_id: str = "video") -> "OpenCVSourceConfig":
        """
        Adapter: Create OpenCVSourceConfig from the source config dict.

        Args:
            source_cfg: Source configuration dict (from config.yaml).
            source_id: Identifier for this source.
        """
        path = source_cfg.get("path", 0)
        if isinstance(path, str) and path.isdigit():
            path = int(path)
        return cls(
            source_id=source_id,
            path=path,
            max_retries=source_cfg.get("max_retries", 3),
            rotate=source_cfg.get("rotate", 0) or 0,
        )


class OpenCVSource(ObservationSource):
    """
    OpenCV-based observation source for video files and cameras.

    Example:
        config = OpenCVSourceConfig(path="clip.mp4")
        with OpenCVSource(config) as source:
            for frame_data in source:
                process(frame_data.frame)
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._opencv_config = config
        self._cap: Optional[cv2.VideoCapture] = None
        self._consecutive_failures = 0
        self._frame_count: Optional[int] = None

    @property
    def path(self) -> Union[int, str]:
        return self._opencv_config.path

    @property
    def is_file(self) -> bool:
        """Check if this is a video file."""
        return isinstance(self.path, str)

    def open(self) -> None:
        """Open the video source."""
        if self._is_open:
            return

        if self.is_file and not os.path.exists(self.path):
            self._fail(f"Video file not found: {self.path}")
            raise SourceOpenError(self._failure_reason)

        self._cap = cv2.VideoCapture(self.path)
        if not self._cap.isOpened():
            self._cap.release()
            self._cap = None
            self._fail(f"Failed to open video source: {self.path}")
            raise SourceOpenError(self._failure_reason)

        if self.is_file:
            count = int(self._cap.get(cv2.CAP_PROP_FRAME_COUNT))
            self._frame_count = count if count > 0 else None

        self._is_open = True
        self._frame_index = 0
        self._consecutive_failures = 0
        self._status = SourceStatus.READING
        logging.info(
            f"OpenCVSource opened: source_id={self.source_id}, "
            f"path={self.path}, frames={self._frame_count}"
        )

    def _reinitialize(self) -> bool:
        if self._cap is not None:
            self._cap.release()
        time.sleep(min(2 ** self._consecutive_failures, 10))
        self._cap = cv2.VideoCapture(self.path)
        return self._cap.isOpened()

    def read(self) -> Optional[FrameData]:
        """Read the next frame from the source."""
        if not self._is_open or self._cap is None:
            return None

        ret, frame = self._cap.read()

        if not ret or frame is None:
            self._consecutive_failures += 1

            if self.is_file:
                short = self._frame_count is not None and self._frame_index < self._frame_count
                # The header count is an estimate; only a readable frame after
                # the failed one proves a mid-file decode error.
                if short and self._cap.grab():
                    self._fail(
                        f"Failed to decode frame {self._frame_index + 1} of {self._frame_count}"
                    )
                    logging.error(self._failure_reason)
                else:
                    if short:
                        logging.warning(
                            f"Video header reported {self._frame_count} frames, "
                            f"decoded {self._frame_index}"
                        )
                    logging.info("End of video file reached")
                    self._complete()
                return None

            if self._consecutive_failures > self._opencv_config.max_retries:
                self._fail("Too many consecutive read failures")
                logging.error(self._failure_reason)
                return None

            logging.warning(
                f"Failed to read frame (failures: {self._consecutive_failures}), reinitializing..."
            )
            if not self._reinitialize():
                logging.warning("Reinitialization failed")
            return None

        self._consecutive_failures = 0
        frame = self._apply_transforms(frame)
        self._frame_index += 1

        return FrameData(
            frame=frame,
            width=frame.shape[1],
            height=frame.shape[0],
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def _apply_transforms(self, frame: np.ndarray) -> np.ndarray:
        """Apply the configured rotation."""
        rotate = self._opencv_config.rotate
        if rotate == 90:
            frame = cv2.rotate(frame, cv2.ROTATE_90_CLOCKWISE)
        elif rotate == 180:
            frame = cv2.rotate(frame, cv2.ROTATE_180)
        elif rotate == 270:
            frame = cv2.rotate(frame, cv2.ROTATE_90_COUNTERCLOCKWISE)
        return frame

    def close(self) -> None:
        """Close the video source and release resources."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        self._is_open = False
        logging.info(f"OpenCVSource closed: source_id={self.source_id}")

    def get_video_info(self) -> Dict[str, Any]:
        """Get information about the open video source."""
        if self._cap is None or not self._cap.isOpened():
            return {}

        return {
            "width": int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            "height": int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            "fps": self._cap.get(cv2.CAP_PROP_FPS),
            "frame_count": self._frame_count,
        }


def create_source_from_config(source_cfg: Dict[str, Any], source_id: str = "video") -> OpenCVSource:
    """Build an OpenCVSource from the ``source`` config section."""
    return OpenCVSource(OpenCVSourceConfig.from_source_config(source_cfg, source_id=source_id))

"""
Frame models: decoded video frames and their per-frame processing results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from .detection import BoxState, ClassifiedBox, Detection


@dataclass
class FrameData:
    """
    Metadata and payload for a decoded video frame.

    Attributes:
        frame: The raw frame data as a numpy array (BGR format).
        width: Frame width in pixels.
        height: Frame height in pixels.
        timestamp: Unix timestamp when frame was decoded.
        frame_index: Sequential frame number since the source was opened.
        source: Identifier for the video source.
    """
    frame: np.ndarray
    width: int
    height: int
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None

    @classmethod
    def from_numpy(
        cls,
        frame: np.ndarray,
        timestamp: float,
        frame_index: int = 0,
        source: Optional[str] = None,
    ) -> "FrameData":
        """Create FrameData from a numpy array."""
        h, w = frame.shape[:2]
        return cls(
            frame=frame,
            width=w,
            height=h,
            timestamp=timestamp,
            frame_index=frame_index,
            source=source,
        )

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)


@dataclass
class FrameResult:
    """
    Everything the pipeline produced for one frame.

    Attributes:
        frame_data: The frame that was processed.
        detections: Raw detector output, in detector order.
        boxes: Classified overlays, one per detection, same order.
        summary: Text summary of high-confidence detections.
        detector_error: Error message if the detector failed on this frame.
        display_size: (width, height) the boxes were mapped into. None = frame size.
    """
    frame_data: FrameData
    detections: List[Detection] = field(default_factory=list)
    boxes: List[ClassifiedBox] = field(default_factory=list)
    summary: str = ""
    detector_error: Optional[str] = None
    display_size: Optional[Tuple[int, int]] = None

    @property
    def frame_index(self) -> int:
        return self.frame_data.frame_index

    def count_by_state(self) -> Dict[str, int]:
        counts = {state.value: 0 for state in BoxState}
        for box in self.boxes:
            counts[box.state.value] += 1
        return counts

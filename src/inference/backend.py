"""
Inference backend interface.

Backends return detections with boxes normalized to the frame (top-left
origin), in whatever order the model produces them.
"""

from __future__ import annotations

from typing import List, Protocol

import numpy as np

from models.detection import Detection


class Detector(Protocol):
    def detect(self, frame: np.ndarray) -> List[Detection]:
        ...

"""
Background-subtraction detector.

Finds moving regions with OpenCV's MOG2 subtractor and contour analysis. No
model file is needed, so this backend works on machines without Ultralytics.
Every region is reported with label "motion" and confidence 1.0.
"""

from __future__ import annotations

import logging
from typing import List

import cv2
import numpy as np

from models.config import BgSubConfig
from models.detection import Detection, NormalizedBox
from .backend import Detector

MOTION_LABEL = "motion"


class BgSubBackend(Detector):
    """Detect moving regions using background subtraction."""

    def __init__(
        self,
        cfg: BgSubConfig,
        max_size_ratio: float = 0.8,
    ) -> None:
        """
        Initialize the detector.

        Args:
            cfg: Subtractor history, variance threshold, shadow handling and
                minimum contour area.
            max_size_ratio: Regions wider or taller than this fraction of the
                frame are ignored (lighting changes, camera shake).
        """
        self.cfg = cfg
        self.max_size_ratio = max_size_ratio
        self.bg_subtractor = cv2.createBackgroundSubtractorMOG2(
            history=cfg.history,
            varThreshold=cfg.var_threshold,
            detectShadows=cfg.detect_shadows,
        )
        self.kernel = np.ones((5, 5), np.uint8)
        logging.info("Background-subtraction detector initialized")

    def detect(self, frame: np.ndarray) -> List[Detection]:
        frame_height, frame_width = frame.shape[:2]

        fg_mask = self.bg_subtractor.apply(frame)

        # Remove noise, then drop shadow pixels (gray) from the mask
        opening = cv2.morphologyEx(fg_mask, cv2.MORPH_OPEN, self.kernel)
        closing = cv2.morphologyEx(opening, cv2.MORPH_CLOSE, self.kernel)
        _, thresholded = cv2.threshold(closing, 200, 255, cv2.THRESH_BINARY)

        contours, _ = cv2.findContours(thresholded, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

        out: List[Detection] = []
        for contour in contours:
            if cv2.contourArea(contour) < self.cfg.min_contour_area:
                continue

            x, y, w, h = cv2.boundingRect(contour)
            if w > frame_width * self.max_size_ratio or h > frame_height * self.max_size_ratio:
                continue

            out.append(
                Detection(
                    box=NormalizedBox.from_pixels(x, y, w, h, frame_width, frame_height),
                    label=MOTION_LABEL,
                    confidence=1.0,
                )
            )

        # Contour order is arbitrary; emit top-to-bottom, left-to-right.
        out.sort(key=lambda d: (d.box.y, d.box.x))
        return out

    def reset_background_model(self) -> None:
        """Reset the background model."""
        self.bg_subtractor = cv2.createBackgroundSubtractorMOG2(
            history=self.cfg.history,
            varThreshold=self.cfg.var_threshold,
            detectShadows=self.cfg.detect_shadows,
        )
        logging.info("Background model reset")

"""
CPU inference backend.

Uses Ultralytics YOLO. Boxes are taken from the normalized ``xyxyn`` output so
no frame-size bookkeeping is needed downstream.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from models.config import YoloConfig
from models.detection import Detection, NormalizedBox
from models.errors import DetectorUnavailableError
from .backend import Detector


@dataclass(frozen=True)
class CpuYoloConfig:
    model: str
    conf_threshold: float = 0.25
    iou_threshold: float = 0.45
    classes: Optional[Sequence[int]] = None
    class_name_overrides: Optional[Dict[int, str]] = None
    class_thresholds: Optional[Dict[int, float]] = None

    @classmethod
    def from_yolo_config(cls, cfg: YoloConfig) -> "CpuYoloConfig":
        """Adapter: Create from the typed detection.yolo config."""
        return cls(
            model=cfg.model,
            conf_threshold=float(cfg.conf_threshold),
            iou_threshold=float(cfg.iou_threshold),
            classes=cfg.classes,
            class_name_overrides=cfg.class_name_overrides,
            class_thresholds=cfg.class_thresholds,
        )


def _to_numpy(values) -> np.ndarray:
    return values.cpu().numpy() if hasattr(values, "cpu") else np.asarray(values)


class UltralyticsCpuBackend(Detector):
    def __init__(self, cfg: CpuYoloConfig):
        self.cfg = cfg
        try:
            from ultralytics import YOLO  # type: ignore
        except Exception as e:  # pragma: no cover
            raise DetectorUnavailableError(
                "Ultralytics is not installed. Install with `pip install ultralytics` "
                "or switch detection.backend to 'bgsub'."
            ) from e

        # Bare names like "yolov8n.pt" are fetched by ultralytics itself.
        if os.path.sep in cfg.model and not os.path.exists(cfg.model):
            raise DetectorUnavailableError(f"YOLO model not found: {cfg.model}")

        try:
            self._model = YOLO(cfg.model)
        except Exception as e:
            raise DetectorUnavailableError(f"Failed to load YOLO model {cfg.model}: {e}") from e

    def _min_confidence(self, class_id: Optional[int]) -> float:
        thresholds = self.cfg.class_thresholds or {}
        if class_id is not None and class_id in thresholds:
            return float(thresholds[class_id])
        return self.cfg.conf_threshold

    def detect(self, frame: np.ndarray) -> List[Detection]:
        # Run the model at the lowest configured threshold, then filter per class.
        floor = min([self.cfg.conf_threshold, *(self.cfg.class_thresholds or {}).values()])
        results = self._model.predict(
            source=frame,
            conf=floor,
            iou=self.cfg.iou_threshold,
            classes=list(self.cfg.classes) if self.cfg.classes is not None else None,
            verbose=False,
        )
        if not results:
            return []

        r0 = results[0]
        names = getattr(r0, "names", None) or {}
        boxes = getattr(r0, "boxes", None)
        if boxes is None:
            return []

        xyxyn = _to_numpy(boxes.xyxyn)
        conf = _to_numpy(boxes.conf)
        cls = _to_numpy(boxes.cls)

        out: List[Detection] = []
        for (x1, y1, x2, y2), c, k in zip(xyxyn, conf, cls):
            class_id = int(k) if k is not None else None
            if float(c) < self._min_confidence(class_id):
                continue
            label = None
            if class_id is not None:
                label = (
                    (self.cfg.class_name_overrides or {}).get(class_id)
                    or names.get(class_id)
                    or str(class_id)
                )
            out.append(
                Detection(
                    box=NormalizedBox.from_xyxyn(float(x1), float(y1), float(x2), float(y2)),
                    label=label,
                    confidence=float(c),
                )
            )

        return out

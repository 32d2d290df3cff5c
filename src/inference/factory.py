"""
Detector factory.

Building a detector is the one fatal initialization step: if the configured
backend cannot be constructed, DetectorUnavailableError is raised and the
pipeline must not start.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from models.config import DetectionConfig
from models.errors import DetectorUnavailableError
from .backend import Detector
from .bgsub_backend import BgSubBackend
from .cpu_backend import CpuYoloConfig, UltralyticsCpuBackend

BACKENDS = ("yolo", "bgsub")


def build_detector(detection_cfg: Dict[str, Any]) -> Detector:
    """
    Build a detector from the ``detection`` config section.

    Raises:
        DetectorUnavailableError: Unknown backend or the backend failed to load.
    """
    cfg = DetectionConfig.from_dict(detection_cfg or {})
    backend = cfg.backend

    if backend == "yolo":
        if cfg.yolo is None or not cfg.yolo.model:
            raise DetectorUnavailableError("detection.yolo.model is required for the yolo backend")
        detector = UltralyticsCpuBackend(CpuYoloConfig.from_yolo_config(cfg.yolo))
    elif backend == "bgsub":
        try:
            detector = BgSubBackend(cfg.bgsub)
        except Exception as e:
            raise DetectorUnavailableError(f"Failed to initialize bgsub detector: {e}") from e
    else:
        raise DetectorUnavailableError(
            f"Unknown detection backend: {backend} (expected one of: {', '.join(BACKENDS)})"
        )

    logging.info(f"Detector ready: backend={backend}")
    return detector

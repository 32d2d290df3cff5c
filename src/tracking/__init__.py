"""
Tracking module.

Maps detections into display space and classifies their movement against the
previous frame.
"""

from .mapper import CoordinateMapper, project_normalized
from .tracker import (
    DEFAULT_MOVEMENT_THRESHOLD,
    TemporalTracker,
    TrackerState,
    classify_detections,
)

__all__ = [
    "CoordinateMapper",
    "project_normalized",
    "DEFAULT_MOVEMENT_THRESHOLD",
    "TemporalTracker",
    "TrackerState",
    "classify_detections",
]

"""
Observation layer for pluggable frame sources.

This layer abstracts where frames come from (video file, camera) from the
frame loop. Each source implements the ObservationSource interface and
returns FrameData objects in order.
"""

from .base import ObservationSource, ObservationConfig
from .opencv_source import OpenCVSource, OpenCVSourceConfig, create_source_from_config

__all__ = [
    "ObservationSource",
    "ObservationConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "create_source_from_config",
]

"""
Typed models for the frame motion monitor.

Frames, detections and classified overlays flow through the pipeline as
these immutable types; configuration dicts convert via the adapters.
"""

from .frame import FrameData, FrameResult
from .detection import (
    NormalizedBox,
    Detection,
    DisplayRect,
    BoxState,
    ClassifiedBox,
    UNKNOWN_LABEL,
)
from .status import SourceStatus, RunStatus, RunReport
from .errors import DetectorUnavailableError, SourceOpenError
from .config import (
    Config,
    SourceConfig,
    DetectionConfig,
    YoloConfig,
    BgSubConfig,
    TrackingConfig,
    DisplayConfig,
    SummaryConfig,
    WebConfig,
)

__all__ = [
    # Frame
    "FrameData",
    "FrameResult",
    # Detection
    "NormalizedBox",
    "Detection",
    "DisplayRect",
    "BoxState",
    "ClassifiedBox",
    "UNKNOWN_LABEL",
    # Status
    "SourceStatus",
    "RunStatus",
    "RunReport",
    # Errors
    "DetectorUnavailableError",
    "SourceOpenError",
    # Config
    "Config",
    "SourceConfig",
    "DetectionConfig",
    "YoloConfig",
    "BgSubConfig",
    "TrackingConfig",
    "DisplayConfig",
    "SummaryConfig",
    "WebConfig",
]

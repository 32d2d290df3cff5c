"""
Pipeline stages for the frame motion monitor.

- annotate: overlay drawing, rendering sinks, recording
"""

from .annotate import (
    AnnotateStage,
    LoggingSink,
    RenderingSink,
    VideoRecorder,
    color_for_state,
    draw_overlays,
    display_view,
)

__all__ = [
    "AnnotateStage",
    "LoggingSink",
    "RenderingSink",
    "VideoRecorder",
    "color_for_state",
    "draw_overlays",
    "display_view",
]

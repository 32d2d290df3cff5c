"""
Pipeline module for the frame motion monitor.

The pipeline orchestrates the full processing flow:
- Frame acquisition from observation sources
- Detection (one call in flight at a time)
- Temporal classification of boxes against the previous frame
- Delivery to rendering sinks and frame-result callbacks
"""

from .engine import PipelineEngine, PipelineConfig, PipelineStats, create_engine_from_config
from .summary import summarize_detections, confident_detections

__all__ = [
    "PipelineEngine",
    "PipelineConfig",
    "PipelineStats",
    "create_engine_from_config",
    "summarize_detections",
    "confident_detections",
]

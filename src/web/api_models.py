from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, Field


class OverlayBox(BaseModel):
    x: float
    y: float
    width: float
    height: float
    state: str = Field(..., description="stable|moving|new")
    label: Optional[str] = None
    confidence: Optional[float] = None


class OverlaysResponse(BaseModel):
    frame_index: int
    boxes: list[OverlayBox]


class RunReportModel(BaseModel):
    status: str = Field(..., description="completed|failed|source_error|cancelled")
    frames_processed: int
    detector_failures: int
    reason: Optional[str] = None
    started_at: float
    finished_at: Optional[float] = None


class StatusResponse(BaseModel):
    """
    Status of the frame loop, optimized for frontend polling.
    """
    running: bool = Field(..., description="True while the frame loop is processing")
    frame_index: int = Field(0, description="Index of the last processed frame")
    frames_processed: int = Field(0, description="Frames processed since start")
    fps: float = Field(0.0, description="Average processing rate")
    last_frame_age_s: Optional[float] = Field(None, description="Seconds since last frame")
    summary: str = Field("", description="Text summary of confident detections")
    count_by_state: Dict[str, int] = Field(
        default_factory=dict,
        description="Boxes in the last frame by state (stable, moving, new)",
    )
    last_run: Optional[RunReportModel] = Field(None, description="Report of the finished run, if any")

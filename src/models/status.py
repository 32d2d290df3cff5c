"""
Status models for frame sources and processing runs.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class SourceStatus(str, Enum):
    """Terminal status signal reported by a frame source."""
    READING = "reading"
    COMPLETED = "completed"
    FAILED = "failed"


class RunStatus(str, Enum):
    """Outcome of a pipeline run."""
    COMPLETED = "completed"
    FAILED = "failed"
    SOURCE_ERROR = "source_error"
    CANCELLED = "cancelled"


@dataclass
class RunReport:
    """
    Summary of a finished pipeline run.

    Attributes:
        status: How the run ended.
        frames_processed: Frames that went through detection and tracking.
        detector_failures: Frames where the detector raised and zero detections were used.
        reason: Failure reason for FAILED / SOURCE_ERROR runs.
        started_at: Unix timestamp when the run started.
        finished_at: Unix timestamp when the run ended.
    """
    status: RunStatus
    frames_processed: int = 0
    detector_failures: int = 0
    reason: Optional[str] = None
    started_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None

    @property
    def ok(self) -> bool:
        return self.status is RunStatus.COMPLETED

    @property
    def duration(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return self.finished_at - self.started_at

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "status": self.status.value,
            "frames_processed": self.frames_processed,
            "detector_failures": self.detector_failures,
            "reason": self.reason,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }

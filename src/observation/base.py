"""
ObservationSource interface for pluggable frame sources.

This defines the contract the frame loop consumes:
- frames are produced strictly in order, with no skipping or reordering
- a terminal status signal tells the loop whether more frames are coming
  (READING), the source is exhausted (COMPLETED), or it broke (FAILED)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

from models.frame import FrameData
from models.status import SourceStatus


@dataclass
class ObservationConfig:
    """
    Base configuration for observation sources.

    Attributes:
        source_id: Unique identifier for this source (e.g., "video-1").
        metadata: Additional source-specific configuration.
    """
    source_id: str = "default"
    metadata: Dict[str, Any] = field(default_factory=dict)


class ObservationSource(ABC):
    """
    Abstract base class for observation sources.

    Lifecycle:
        1. Create instance with config
        2. Call open() to initialize the source
        3. Call read() while status is READING
        4. Call close() to release resources

    Can also be used as a context manager:
        with OpenCVSource(config) as source:
            for frame_data in source:
                process(frame_data)
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0
        self._status = SourceStatus.READING
        self._failure_reason: Optional[str] = None

    @property
    def source_id(self) -> str:
        """Unique identifier for this source."""
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        """Whether the source is currently open and ready to read."""
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Current frame index (number of frames read since open)."""
        return self._frame_index

    @property
    def status(self) -> SourceStatus:
        """READING while frames may still arrive, else the terminal status."""
        return self._status

    @property
    def failure_reason(self) -> Optional[str]:
        """Why the source failed, when status is FAILED."""
        return self._failure_reason

    def _complete(self) -> None:
        self._status = SourceStatus.COMPLETED

    def _fail(self, reason: str) -> None:
        self._status = SourceStatus.FAILED
        self._failure_reason = reason

    @abstractmethod
    def open(self) -> None:
        """
        Open/initialize the observation source.

        Must be called before read().

        Raises:
            SourceOpenError: If the source cannot be opened.
        """
        pass

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """
        Read the next frame from the source.

        Returns:
            FrameData for the next frame in order, or None if no frame is
            available. Check status to tell end-of-stream from a transient miss.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """
        Close/release the observation source.

        Safe to call multiple times.
        """
        pass

    def __enter__(self) -> "ObservationSource":
        """Context manager entry - opens the source."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - closes the source."""
        self.close()

    def __iter__(self) -> Iterator[FrameData]:
        """
        Iterate over frames from the source.

        Yields FrameData objects while the status is READING.
        The source must be open before iterating.
        """
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")

        while self._status is SourceStatus.READING:
            frame_data = self.read()
            if frame_data is None:
                break
            yield frame_data

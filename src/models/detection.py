"""
Detection models for object detection results and classified overlays.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

UNKNOWN_LABEL = "unknown"


@dataclass(frozen=True)
class NormalizedBox:
    """
    A bounding box in normalized coordinates.

    Attributes:
        x: Left edge as a fraction of frame width (0-1).
        y: Top edge as a fraction of frame height (0-1).
        width: Box width as a fraction of frame width (0-1).
        height: Box height as a fraction of frame height (0-1).
    """
    x: float
    y: float
    width: float
    height: float

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (x, y, width, height) tuple."""
        return (self.x, self.y, self.width, self.height)

    @classmethod
    def from_xyxyn(cls, x1: float, y1: float, x2: float, y2: float) -> "NormalizedBox":
        """Create from normalized corner coordinates."""
        return cls(x=x1, y=y1, width=x2 - x1, height=y2 - y1)

    @classmethod
    def from_pixels(
        cls,
        x: float,
        y: float,
        w: float,
        h: float,
        frame_width: int,
        frame_height: int,
    ) -> "NormalizedBox":
        """Create from a pixel-space (x, y, w, h) box and the frame size."""
        return cls(
            x=x / frame_width,
            y=y / frame_height,
            width=w / frame_width,
            height=h / frame_height,
        )


@dataclass(frozen=True)
class Detection:
    """
    A single detection from an object detector.

    Detections carry no identity across frames.

    Attributes:
        box: Bounding box in normalized coordinates.
        label: Class label assigned by the detector, if any.
        confidence: Detection confidence score (0-1).
    """
    box: NormalizedBox
    label: Optional[str] = None
    confidence: float = 1.0

    @property
    def display_label(self) -> str:
        return self.label or UNKNOWN_LABEL

    @classmethod
    def from_xywh(
        cls,
        x: float,
        y: float,
        w: float,
        h: float,
        label: Optional[str] = None,
        confidence: float = 1.0,
    ) -> "Detection":
        """Create Detection from normalized x, y, width, height."""
        return cls(
            box=NormalizedBox(x=x, y=y, width=w, height=h),
            label=label,
            confidence=confidence,
        )


@dataclass(frozen=True)
class DisplayRect:
    """
    A rectangle in display (pixel) coordinates.

    Attributes:
        x: Left edge x coordinate.
        y: Top edge y coordinate.
        width: Rectangle width in pixels.
        height: Rectangle height in pixels.
    """
    x: float
    y: float
    width: float
    height: float

    def swapped(self) -> "DisplayRect":
        """Return the rect with x/y and width/height exchanged."""
        return DisplayRect(x=self.y, y=self.x, width=self.height, height=self.width)

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (x, y, width, height) tuple."""
        return (self.x, self.y, self.width, self.height)

    def as_int_xyxy(self) -> Tuple[int, int, int, int]:
        """Return integer (x1, y1, x2, y2) corners for drawing."""
        return (
            int(self.x),
            int(self.y),
            int(self.x + self.width),
            int(self.y + self.height),
        )


class BoxState(str, Enum):
    """Classification of a box relative to the previous frame."""
    STABLE = "stable"
    MOVING = "moving"
    NEW = "new"

    @property
    def renders_as_moving(self) -> bool:
        # NEW has no visual treatment of its own.
        return self is not BoxState.STABLE


@dataclass(frozen=True)
class ClassifiedBox:
    """
    A display rect with its movement classification.

    Attributes:
        rect: Rectangle in display coordinates.
        state: Classification against the previous frame.
        detection: Detection the rect was derived from.
    """
    rect: DisplayRect
    state: BoxState
    detection: Optional[Detection] = None

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary."""
        d = {
            "x": self.rect.x,
            "y": self.rect.y,
            "width": self.rect.width,
            "height": self.rect.height,
            "state": self.state.value,
        }
        if self.detection is not None:
            d["label"] = self.detection.display_label
            d["confidence"] = self.detection.confidence
        return d

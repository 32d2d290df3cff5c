"""
Temporal tracker: classifies each detection as stable, moving or new.

Correspondence between frames is positional. Detection ``i`` of the current
frame is compared with detection ``i`` of the previous frame; there is no
identity matching or reordering. A detector that reorders the same physical
objects between frames will therefore produce MOVING for boxes that did not
move. Only one previous frame is ever kept.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from models.detection import BoxState, ClassifiedBox, Detection
from .mapper import CoordinateMapper

DEFAULT_MOVEMENT_THRESHOLD = 10.0


@dataclass(frozen=True)
class TrackerState:
    """
    Snapshot of the previous frame's raw detections.

    Attributes:
        previous: Detections of the last processed frame, in detector order.
    """
    previous: Tuple[Detection, ...] = ()

    def __len__(self) -> int:
        return len(self.previous)


def classify_detections(
    state: TrackerState,
    current: Sequence[Detection],
    mapper: CoordinateMapper,
    display_size: Tuple[float, float],
    threshold: float = DEFAULT_MOVEMENT_THRESHOLD,
) -> Tuple[List[ClassifiedBox], TrackerState]:
    """
    Classify the current detections against the previous frame.

    Args:
        state: Previous-frame snapshot.
        current: Detections of the current frame.
        mapper: Mapper applied to both previous and current boxes.
        display_size: (width, height) of the display in pixels.
        threshold: Per-axis displacement in pixels below which a box is stable.

    Returns:
        (boxes, new_state): one ClassifiedBox per current detection in input
        order, and the snapshot to use for the next frame.
    """
    previous = state.previous
    boxes: List[ClassifiedBox] = []

    for i, detection in enumerate(current):
        curr_rect = mapper.to_display_size(detection.box, display_size)

        if i < len(previous):
            prev_rect = mapper.to_display_size(previous[i].box, display_size)
            delta_x = abs(curr_rect.x - prev_rect.x)
            delta_y = abs(curr_rect.y - prev_rect.y)
            if delta_x < threshold and delta_y < threshold:
                box_state = BoxState.STABLE
            else:
                box_state = BoxState.MOVING
        else:
            box_state = BoxState.NEW

        boxes.append(ClassifiedBox(rect=curr_rect, state=box_state, detection=detection))

    return boxes, TrackerState(previous=tuple(current))


class TemporalTracker:
    """
    Owns the previous-frame snapshot and classifies each new frame against it.

    The snapshot is replaced wholesale after every update. The tracker is not
    thread-safe; it must be driven from a single thread in frame order.

    Example:
        tracker = TemporalTracker(movement_threshold=10.0)
        boxes = tracker.update(detections, display_size=(1280, 720))
    """

    def __init__(
        self,
        mapper: Optional[CoordinateMapper] = None,
        movement_threshold: float = DEFAULT_MOVEMENT_THRESHOLD,
    ):
        self.mapper = mapper or CoordinateMapper()
        self.movement_threshold = movement_threshold
        self._state = TrackerState()

    @property
    def state(self) -> TrackerState:
        return self._state

    def update(
        self,
        current: Sequence[Detection],
        display_size: Tuple[float, float],
    ) -> List[ClassifiedBox]:
        """
        Classify the current frame and remember it as the previous frame.

        Args:
            current: Detections of the current frame, in detector order.
            display_size: (width, height) of the display in pixels.

        Returns:
            One ClassifiedBox per detection, same order as ``current``.
        """
        boxes, self._state = classify_detections(
            self._state,
            current,
            self.mapper,
            display_size,
            self.movement_threshold,
        )
        return boxes

    def reset(self) -> None:
        """Forget the previous frame."""
        self._state = TrackerState()
        logging.debug("Temporal tracker reset")

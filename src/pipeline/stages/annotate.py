"""
Annotate stage: draws classified overlays and hands them to consumers.

Rendering sinks receive the ClassifiedBox list of every processed frame, in
frame order, on the frame-loop thread. Sinks that feed another thread (the
web preview) copy what they need and hand it off themselves.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Callable, Optional, Protocol, Sequence, Tuple

import cv2
import numpy as np

from models.detection import BoxState, ClassifiedBox
from models.frame import FrameResult

# Colors (BGR)
COLOR_STABLE = (0, 255, 0)  # Green
COLOR_MOVING = (0, 0, 255)  # Red
COLOR_TEXT = (255, 255, 255)


class RenderingSink(Protocol):
    def render(self, boxes: Sequence[ClassifiedBox]) -> None:
        ...


def color_for_state(state: BoxState):
    return COLOR_MOVING if state.renders_as_moving else COLOR_STABLE


def display_view(
    frame: np.ndarray,
    swap_axes: bool = True,
    display_size: Optional[Tuple[int, int]] = None,
) -> np.ndarray:
    """
    Return the frame as it is displayed, in the space ClassifiedBox rects live in.

    With swapped axes the stored frame is transposed (stored x becomes display y).
    If the boxes were mapped to an explicit display size, the view is resized to it.
    """
    view = cv2.transpose(frame) if swap_axes else frame
    if display_size is not None:
        width, height = display_size
        if (view.shape[1], view.shape[0]) != (int(width), int(height)):
            view = cv2.resize(view, (int(width), int(height)))
    return view


def draw_overlays(
    frame: np.ndarray,
    boxes: Sequence[ClassifiedBox],
    summary: Optional[str] = None,
    show_labels: bool = True,
) -> np.ndarray:
    """
    Draw classified boxes (and optionally the summary line) on a copy of the frame.

    Returns the annotated copy; the input frame is not modified.
    """
    annotated = frame.copy()
    font = cv2.FONT_HERSHEY_SIMPLEX

    for box in boxes:
        x1, y1, x2, y2 = box.rect.as_int_xyxy()
        color = color_for_state(box.state)
        cv2.rectangle(annotated, (x1, y1), (x2, y2), color, 2)

        if show_labels and box.detection is not None:
            label = f"{box.detection.display_label} {box.state.value}"
            (tw, th), _ = cv2.getTextSize(label, font, 0.5, 1)
            cv2.rectangle(annotated, (x1, y1 - th - 6), (x1 + tw + 4, y1), color, -1)
            cv2.putText(annotated, label, (x1 + 2, y1 - 4), font, 0.5, COLOR_TEXT, 1)

    if summary:
        cv2.putText(annotated, summary, (10, 30), font, 0.6, COLOR_TEXT, 2)

    return annotated


class LoggingSink:
    """Rendering sink that logs per-frame state counts at DEBUG level."""

    def __init__(self):
        self.frames_rendered = 0

    def render(self, boxes: Sequence[ClassifiedBox]) -> None:
        self.frames_rendered += 1
        stable = sum(1 for b in boxes if b.state is BoxState.STABLE)
        logging.debug(
            f"[RENDER] frame={self.frames_rendered} boxes={len(boxes)} "
            f"stable={stable} moving={len(boxes) - stable}"
        )


class AnnotateStage:
    """
    Frame-result callback that draws overlays on the display view of the frame
    and forwards the annotated image. `swap_axes` must match the mapper the
    boxes came from.

    Example:
        stage = AnnotateStage(on_frame=recorder.write, swap_axes=True)
        engine.add_callback(stage)
    """

    def __init__(
        self,
        on_frame: Optional[Callable[[np.ndarray, FrameResult], None]] = None,
        draw_summary: bool = True,
        swap_axes: bool = True,
    ):
        self._consumers = []
        if on_frame is not None:
            self._consumers.append(on_frame)
        self.draw_summary = draw_summary
        self.swap_axes = swap_axes

    def add_consumer(self, consumer: Callable[[np.ndarray, FrameResult], None]) -> None:
        self._consumers.append(consumer)

    def __call__(self, result: FrameResult) -> None:
        view = display_view(result.frame_data.frame, self.swap_axes, result.display_size)
        annotated = draw_overlays(
            view,
            result.boxes,
            summary=result.summary if self.draw_summary else None,
        )
        for consumer in self._consumers:
            consumer(annotated, result)


class VideoRecorder:
    """Writes annotated frames to an .avi file."""

    def __init__(self, output_dir: str = "output/video", fps: float = 30.0):
        self.output_dir = output_dir
        self.fps = fps
        self.output_path: Optional[str] = None
        self._writer: Optional[cv2.VideoWriter] = None

    def _open(self, width: int, height: int) -> None:
        os.makedirs(self.output_dir, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.output_path = os.path.join(self.output_dir, f"overlays_{timestamp}.avi")
        fourcc = cv2.VideoWriter_fourcc(*"XVID")
        self._writer = cv2.VideoWriter(self.output_path, fourcc, self.fps, (width, height), True)
        logging.info(f"Video recording started: {self.output_path}")

    def write(self, annotated: np.ndarray, result: Optional[FrameResult] = None) -> None:
        if self._writer is None:
            h, w = annotated.shape[:2]
            self._open(w, h)
        self._writer.write(annotated)

    def close(self) -> None:
        if self._writer is not None:
            self._writer.release()
            self._writer = None
            logging.info(f"Video saved: {self.output_path}")

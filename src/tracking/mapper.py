"""
Coordinate mapping from detector space to display space.

Detector boxes are normalized to the stored frame. The stored frame is rotated
90 degrees relative to how it is displayed, so projecting a box into display
pixels swaps the reference axes and then the rect's own axes.
"""

from __future__ import annotations

from typing import Tuple

from models.detection import DisplayRect, NormalizedBox


def project_normalized(box: NormalizedBox, image_width: float, image_height: float) -> DisplayRect:
    """Scale a normalized box to an image of the given size."""
    return DisplayRect(
        x=box.x * image_width,
        y=box.y * image_height,
        width=box.width * image_width,
        height=box.height * image_height,
    )


class CoordinateMapper:
    """
    Maps normalized boxes into display-space pixel rects.

    The same instance must be used for the previous and the current frame so
    that displacements between them are measured in one coordinate space.

    Example:
        mapper = CoordinateMapper()
        rect = mapper.to_display(detection.box, width=1280, height=720)
    """

    def __init__(self, swap_axes: bool = True):
        self.swap_axes = swap_axes

    def to_display(self, box: NormalizedBox, width: float, height: float) -> DisplayRect:
        """
        Map a normalized box into a display rect.

        Args:
            box: Normalized box from the detector.
            width: Display width in pixels (> 0).
            height: Display height in pixels (> 0).

        Raises:
            ValueError: If the display size is not positive.
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Display size must be positive, got {width}x{height}")

        if not self.swap_axes:
            return project_normalized(box, width, height)

        # Reference frame is (H, W), then the rect itself is transposed.
        intermediate = project_normalized(box, height, width)
        return intermediate.swapped()

    def to_display_size(self, box: NormalizedBox, display_size: Tuple[float, float]) -> DisplayRect:
        width, height = display_size
        return self.to_display(box, width, height)

"""
Text summary of confident detections.

The confidence filter here only shapes the summary line. Every detection is
still classified and rendered regardless of confidence.
"""

from __future__ import annotations

from typing import List, Sequence

from models.detection import Detection

DEFAULT_MIN_CONFIDENCE = 0.8
SUMMARY_PREFIX = "Detected objects: "


def confident_detections(
    detections: Sequence[Detection],
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
) -> List[Detection]:
    """Detections with confidence strictly above ``min_confidence``, in order."""
    return [d for d in detections if d.confidence > min_confidence]


def describe_detection(detection: Detection) -> str:
    return f"{detection.display_label}: {detection.confidence:.2f}"


def summarize_detections(
    detections: Sequence[Detection],
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
) -> str:
    """
    Build the "label: confidence" summary line for a frame.

    Example:
        >>> summarize_detections([Detection.from_xywh(0, 0, 1, 1, "car", 0.91)])
        'Detected objects: car: 0.91'
    """
    descriptions = [describe_detection(d) for d in confident_detections(detections, min_confidence)]
    return SUMMARY_PREFIX + ", ".join(descriptions)

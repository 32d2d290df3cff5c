"""
Pytest configuration and shared fixtures.
"""

import os
import sys
import time

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models.detection import Detection  # noqa: E402
from models.frame import FrameData  # noqa: E402


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
source:
  path: "clip.mp4"
  max_consecutive_failures: 10

detection:
  backend: "bgsub"
  bgsub:
    min_contour_area: 500
    history: 100

tracking:
  movement_threshold_px: 10.0
  swap_axes: true

summary:
  min_confidence: 0.8

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "source": {
            "path": "clip.mp4",
            "max_consecutive_failures": 10,
            "rotate": 0,
        },
        "detection": {
            "backend": "bgsub",
            "bgsub": {"min_contour_area": 500},
        },
        "tracking": {
            "movement_threshold_px": 10.0,
            "swap_axes": True,
        },
        "display": {"width": None, "height": None},
        "summary": {"min_confidence": 0.8},
        "web": {"enabled": False, "host": "127.0.0.1", "port": 5000},
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }


@pytest.fixture
def make_frame_data():
    """Factory for FrameData with a blank BGR frame."""
    def _make(index=1, width=640, height=480):
        frame = np.zeros((height, width, 3), dtype=np.uint8)
        return FrameData(
            frame=frame,
            width=width,
            height=height,
            timestamp=time.time(),
            frame_index=index,
            source="test",
        )
    return _make


@pytest.fixture
def car_detection():
    return Detection.from_xywh(0.25, 0.25, 0.125, 0.125, label="car", confidence=0.9)

"""
Error types shared across the pipeline.
"""

from __future__ import annotations


class DetectorUnavailableError(RuntimeError):
    """The detector or its model cannot be loaded; processing must not start."""


class SourceOpenError(RuntimeError):
    """The frame source could not be opened."""

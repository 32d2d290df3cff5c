"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class SourceConfig:
    """Frame source configuration."""
    path: Union[int, str] = "video.mp4"
    max_consecutive_failures: int = 10
    read_retry_delay: float = 0.5
    rotate: int = 0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SourceConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            path=d.get("path", "video.mp4"),
            max_consecutive_failures=d.get("max_consecutive_failures", 10),
            read_retry_delay=d.get("read_retry_delay", 0.5),
            rotate=d.get("rotate", 0) or 0,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "max_consecutive_failures": self.max_consecutive_failures,
            "read_retry_delay": self.read_retry_delay,
            "rotate": self.rotate,
        }


@dataclass
class YoloConfig:
    """YOLO detector configuration."""
    model: str = ""
    conf_threshold: float = 0.25
    iou_threshold: float = 0.45
    classes: Optional[List[int]] = None
    class_name_overrides: Optional[Dict[int, str]] = None
    class_thresholds: Optional[Dict[int, float]] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "YoloConfig":
        return cls(
            model=d.get("model", ""),
            conf_threshold=d.get("conf_threshold", 0.25),
            iou_threshold=d.get("iou_threshold", 0.45),
            classes=d.get("classes"),
            class_name_overrides=d.get("class_name_overrides"),
            class_thresholds=d.get("class_thresholds"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "model": self.model,
            "conf_threshold": self.conf_threshold,
            "iou_threshold": self.iou_threshold,
        }
        if self.classes is not None:
            d["classes"] = self.classes
        if self.class_name_overrides is not None:
            d["class_name_overrides"] = self.class_name_overrides
        if self.class_thresholds is not None:
            d["class_thresholds"] = self.class_thresholds
        return d


@dataclass
class BgSubConfig:
    """Background-subtraction detector configuration."""
    min_contour_area: int = 500
    history: int = 100
    var_threshold: int = 40
    detect_shadows: bool = True

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "BgSubConfig":
        return cls(
            min_contour_area=d.get("min_contour_area", 500),
            history=d.get("history", 100),
            var_threshold=d.get("var_threshold", 40),
            detect_shadows=d.get("detect_shadows", True),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min_contour_area": self.min_contour_area,
            "history": self.history,
            "var_threshold": self.var_threshold,
            "detect_shadows": self.detect_shadows,
        }


@dataclass
class DetectionConfig:
    """Detection configuration."""
    backend: str = "yolo"
    yolo: Optional[YoloConfig] = None
    bgsub: BgSubConfig = field(default_factory=BgSubConfig)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectionConfig":
        yolo_dict = d.get("yolo")
        yolo = YoloConfig.from_dict(yolo_dict) if yolo_dict else None
        return cls(
            backend=d.get("backend", "yolo"),
            yolo=yolo,
            bgsub=BgSubConfig.from_dict(d.get("bgsub") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "backend": self.backend,
            "bgsub": self.bgsub.to_dict(),
        }
        if self.yolo:
            d["yolo"] = self.yolo.to_dict()
        return d


@dataclass
class TrackingConfig:
    """Temporal tracking configuration."""
    movement_threshold_px: float = 10.0
    swap_axes: bool = True

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TrackingConfig":
        return cls(
            movement_threshold_px=float(d.get("movement_threshold_px", 10.0)),
            swap_axes=d.get("swap_axes", True),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "movement_threshold_px": self.movement_threshold_px,
            "swap_axes": self.swap_axes,
        }


@dataclass
class DisplayConfig:
    """Display size used for coordinate mapping. None = use the frame size."""
    width: Optional[int] = None
    height: Optional[int] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DisplayConfig":
        return cls(width=d.get("width"), height=d.get("height"))

    def to_dict(self) -> Dict[str, Any]:
        return {"width": self.width, "height": self.height}


@dataclass
class SummaryConfig:
    """Text summary configuration."""
    min_confidence: float = 0.8

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SummaryConfig":
        return cls(min_confidence=float(d.get("min_confidence", 0.8)))

    def to_dict(self) -> Dict[str, Any]:
        return {"min_confidence": self.min_confidence}


@dataclass
class WebConfig:
    """Preview web server configuration."""
    enabled: bool = False
    host: str = "0.0.0.0"
    port: int = 5000

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            enabled=d.get("enabled", False),
            host=d.get("host", "0.0.0.0"),
            port=d.get("port", 5000),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "host": self.host, "port": self.port}


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    source: SourceConfig = field(default_factory=SourceConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    summary: SummaryConfig = field(default_factory=SummaryConfig)
    web: WebConfig = field(default_factory=WebConfig)
    log_path: str = "logs/frame_monitor.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            source=SourceConfig.from_dict(d.get("source") or {}),
            detection=DetectionConfig.from_dict(d.get("detection") or {}),
            tracking=TrackingConfig.from_dict(d.get("tracking") or {}),
            display=DisplayConfig.from_dict(d.get("display") or {}),
            summary=SummaryConfig.from_dict(d.get("summary") or {}),
            web=WebConfig.from_dict(d.get("web") or {}),
            log_path=d.get("log_path", "logs/frame_monitor.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or passing to existing code)."""
        return {
            "source": self.source.to_dict(),
            "detection": self.detection.to_dict(),
            "tracking": self.tracking.to_dict(),
            "display": self.display.to_dict(),
            "summary": self.summary.to_dict(),
            "web": self.web.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
